from digivote.elections import ACTIVATION_WARNING

USERS = [
    {"_id": "1", "fullName": "Asha Patel", "email": "asha@x.in", "city": "Agol", "role": "voter", "state": "Gujarat"},
    {"_id": "2", "fullName": "Ravi Shah", "email": "ravi@x.in", "city": "Pune", "role": "admin", "state": "Maharashtra"},
    {"_id": "3", "fullName": "Meena Rao", "email": "meena@x.in", "city": "Kadi", "role": "voter", "state": "Gujarat"},
]

DRAFT = {
    "_id": "e1", "title": "Kadi Panchayat", "type": "Panchayat", "level": "Village", "status": "draft",
    "state": "Gujarat", "district": "Mehsana", "taluka": "Kadi", "villageCity": "Agol",
    "votingStartDate": "2025-03-01T09:00:00Z", "votingEndDate": "2025-03-05T17:00:00Z",
    "resultDeclarationDate": "2025-03-06T10:00:00Z",
}


def test_admin_pages_need_admin_token(client, voter):
    resp = client.get("/admin/elections")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/admin/login")


def test_admin_login_flow(client, fake):
    fake.add("POST", "/api/admin-auth/send-otp", message="OTP sent")
    fake.add("POST", "/api/admin-auth/verify-otp", {"token": "adm", "admin": {"email": "root@x.in"}})

    resp = client.post("/admin/login", data={"email": "root@x.in", "password": "secret"})
    assert b'name="otp"' in resp.data
    resp = client.post("/admin/login/verify", data={"email": "root@x.in", "otp": "123456"})

    assert resp.headers["Location"].endswith("/admin/")
    with client.session_transaction() as sess:
        assert sess["adminToken"] == "adm"


def test_admin_401_drops_admin_token_only(client, fake, admin):
    with client.session_transaction() as sess:
        sess["token"] = "user-token"
    fake.add("GET", "/api/elections", status=401)

    resp = client.get("/admin/elections")

    assert resp.headers["Location"].endswith("/admin/login")
    with client.session_transaction() as sess:
        assert "adminToken" not in sess
        assert sess["token"] == "user-token"


def test_candidate_delete_requires_confirmation(client, fake, admin):
    fake.add("DELETE", "/api/candidates/c1", message="Candidate deleted")

    resp = client.post("/admin/candidates/c1/delete")

    assert resp.status_code == 200
    assert b"Are you sure you want to delete this candidate?" in resp.data
    assert fake.calls_to("DELETE", "/api/candidates/c1") == []

    resp = client.post("/admin/candidates/c1/delete", data={"confirm": "yes"})

    assert resp.status_code == 302
    assert len(fake.calls_to("DELETE", "/api/candidates/c1")) == 1


def test_candidate_create_normalizes_card_number(client, fake, admin):
    fake.add("POST", "/api/candidates", message="Created")
    form = {"name": "Ravi", "partyName": "Green", "electionCardNumber": "abc-1234567", "state": "Gujarat",
            "district": "Mehsana", "taluka": "Kadi", "village": "Agol"}

    resp = client.post("/admin/candidates/new", data=form)

    assert resp.status_code == 302
    sent = fake.calls_to("POST", "/api/candidates")[0].json
    assert sent["electionCardNumber"] == "ABC1234567"
    assert sent["village"] == "Agol"


def test_candidate_with_bad_card_is_not_submitted(client, fake, admin):
    form = {"name": "Ravi", "partyName": "Green", "electionCardNumber": "12345", "state": "Gujarat",
            "district": "Mehsana", "taluka": "Kadi", "village": "Agol"}

    resp = client.post("/admin/candidates/new", data=form)

    assert b"Format: 3 letters" in resp.data
    assert fake.calls_to("POST", "/api/candidates") == []


def test_unassign_blocked_once_election_started(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "active"}})

    client.post("/admin/candidates/c1/unassign/e1", data={"confirm": "yes"})

    assert fake.calls_to("DELETE", "/api/elections/e1/candidates/c1") == []


def test_assign_admin_is_one_batched_call(client, fake, admin):
    fake.add("GET", "/api/admin/users", {"users": USERS})
    fake.add("POST", "/api/admin/users/assign-admin", message="Roles updated")

    resp = client.post("/admin/access-roles", data={"userIds": ["1", "2", "3"], "action": "assign"})
    assert b"Assign admin role to 2 selected user(s)?" in resp.data
    assert fake.calls_to("POST", "/api/admin/users/assign-admin") == []

    client.post("/admin/access-roles", data={"userIds": ["1", "2", "3"], "action": "assign", "confirm": "yes"})

    calls = fake.calls_to("POST", "/api/admin/users/assign-admin")
    assert len(calls) == 1
    assert calls[0].json == {"userIds": ["1", "3"]}


def test_notification_by_location(client, fake, admin):
    fake.add("GET", "/api/admin/users", {"users": USERS})
    fake.add("POST", "/api/admin/notifications/send", message="Sent")

    client.post("/admin/notifications", data={"mode": "location", "action": "send", "subject": "Polling day",
                                              "message": "Booths open at 7", "state": "Gujarat"})

    assert fake.calls_to("POST", "/api/admin/notifications/send")[0].json == {
        "subject": "Polling day", "message": "Booths open at 7", "locationFilter": {"state": "Gujarat"}}


def test_active_election_form_locks_everything_but_status(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "active"}})

    resp = client.get("/admin/elections/e1/edit")

    assert b'name="title" value="Kadi Panchayat" disabled' in resp.data
    assert b">draft</option>" not in resp.data
    assert b"<option selected>active</option>" in resp.data
    assert b">completed</option>" in resp.data


def test_active_election_can_only_complete(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "active"}})
    fake.add("PUT", "/api/elections/e1", message="Updated")

    client.post("/admin/elections/e1/edit", data={"status": "draft"})
    assert fake.calls_to("PUT", "/api/elections/e1") == []

    client.post("/admin/elections/e1/edit", data={"status": "completed"})
    assert fake.calls_to("PUT", "/api/elections/e1")[0].json == {"status": "completed"}


def test_activation_asks_for_confirmation(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": DRAFT})
    fake.add("PUT", "/api/elections/e1", message="Updated")
    form = {"title": "Kadi Panchayat", "type": "Panchayat", "level": "Village", "status": "active",
            "state": "Gujarat", "district": "Mehsana", "taluka": "Kadi", "villageCity": "Agol",
            "votingStartDate": "2025-03-01T09:00", "votingEndDate": "2025-03-05T17:00",
            "resultDeclarationDate": "2025-03-06T10:00"}

    resp = client.post("/admin/elections/e1/edit", data=form)
    assert ACTIVATION_WARNING.encode() in resp.data
    assert fake.calls_to("PUT", "/api/elections/e1") == []

    client.post("/admin/elections/e1/edit", data={**form, "confirm": "yes"})
    assert fake.calls_to("PUT", "/api/elections/e1")[0].json == {"status": "active"}


def test_publish_disabled_after_declaration(client, fake, admin):
    declared = {**DRAFT, "status": "completed", "results": {"isDeclared": True}}
    fake.add("GET", "/api/elections/e1", {"election": declared})
    fake.add("GET", "/api/elections/e1/results", {
        "election": {"totalVotesCast": 10},
        "candidates": [{"candidateId": "c1", "name": "Ravi", "partyName": "Green", "votes": 10}],
    })

    resp = client.get("/admin/results/e1")
    assert b"disabled" in resp.data
    assert b"Results published" in resp.data

    client.post("/admin/results/e1/publish", data={"confirm": "yes"})
    assert fake.calls_to("POST", "/api/elections/e1/publish-results") == []


def test_publish_after_voting_ends(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "completed"}})
    fake.add("POST", "/api/elections/e1/publish-results", message="Published")

    client.post("/admin/results/e1/publish")
    assert fake.calls_to("POST", "/api/elections/e1/publish-results") == []

    client.post("/admin/results/e1/publish", data={"confirm": "yes"})
    assert len(fake.calls_to("POST", "/api/elections/e1/publish-results")) == 1


def test_results_csv_export(client, fake, admin):
    fake.add("GET", "/api/elections/e1/results", {
        "election": {"_id": "e1", "title": "Kadi Panchayat"},
        "candidates": [{"candidateId": "c1", "name": "Ravi", "partyName": "Green", "votes": 3}],
    })

    resp = client.get("/admin/results/e1/export.csv")

    assert resp.mimetype == "text/csv"
    assert "Kadi_Panchayat_results.csv" in resp.headers["Content-Disposition"]
    assert b"Kadi Panchayat,1,c1,Ravi,Green,3" in resp.data


def test_elections_list_refreshes(client, fake, admin):
    fake.add("GET", "/api/elections", {"elections": [DRAFT], "pagination": {"currentPage": 1, "totalPages": 1}})

    resp = client.get("/admin/elections?search=kadi")

    assert b'http-equiv="refresh" content="30"' in resp.data
    assert fake.calls_to("GET", "/api/elections")[0].params["search"] == "kadi"


def test_assign_rejects_election_that_is_not_upcoming(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "active"}})
    fake.add("POST", "/api/elections/e1/candidates", message="Assigned")

    resp = client.post("/admin/candidates/c1/assign", data={"electionId": "e1"})

    assert resp.headers["Location"].endswith("/admin/candidates/c1")
    assert fake.calls_to("POST", "/api/elections/e1/candidates") == []


def test_assign_to_upcoming_election(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "upcoming"}})
    fake.add("POST", "/api/elections/e1/candidates", message="Assigned")

    client.post("/admin/candidates/c1/assign", data={"electionId": "e1"})

    assert fake.calls_to("POST", "/api/elections/e1/candidates")[0].json == {"candidateId": "c1"}


def test_candidate_detail_fetches_assigned_elections_in_order(client, fake, admin):
    fake.add("GET", "/api/candidates/c1", {"candidate": {
        "_id": "c1", "name": "Ravi", "partyName": "Green",
        "assignedElections": [{"electionId": "e2"}, {"electionId": "e3"}]}})
    fake.add("GET", "/api/elections/e2", {"election": {"_id": "e2", "title": "Ward 2", "status": "upcoming"}})
    fake.add("GET", "/api/elections/e3", {"election": {"_id": "e3", "title": "Ward 3", "status": "completed"}})
    fake.add("GET", "/api/elections", {"elections": []})

    client.get("/admin/candidates/c1")

    assert [c.path for c in fake.calls] == ["/api/candidates/c1", "/api/elections/e2", "/api/elections/e3",
                                            "/api/elections"]


def test_candidate_detail_offers_only_unassigned_upcoming_elections(client, fake, admin):
    fake.add("GET", "/api/candidates/c1", {"candidate": {
        "_id": "c1", "name": "Ravi", "partyName": "Green", "assignedElections": [{"electionId": "e2"}]}})
    fake.add("GET", "/api/elections/e2", {"election": {"_id": "e2", "title": "Ward 2", "status": "upcoming"}})
    fake.add("GET", "/api/elections", {"elections": [
        {"_id": "e2", "title": "Ward 2", "status": "upcoming"},
        {"_id": "e4", "title": "Ward 4", "status": "upcoming"},
        {"_id": "e5", "title": "Ward 5", "status": "active"},
    ]})

    resp = client.get("/admin/candidates/c1")

    assert b'<option value="e4">Ward 4</option>' in resp.data
    assert b'<option value="e2">' not in resp.data
    assert b'<option value="e5">' not in resp.data
    assert fake.calls_to("GET", "/api/elections")[0].params == {"status": "upcoming", "archived": "false",
                                                               "limit": 100}


def test_archive_requires_confirmation(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "completed"}})
    fake.add("POST", "/api/elections/e1/archive", message="Archived")

    resp = client.post("/admin/elections/e1/archive")

    assert b"Remove from manage list?" in resp.data
    assert fake.calls == []

    client.post("/admin/elections/e1/archive", data={"confirm": "yes"})

    assert len(fake.calls_to("POST", "/api/elections/e1/archive")) == 1


def test_archive_only_completed_elections(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "upcoming"}})
    fake.add("POST", "/api/elections/e1/archive", message="Archived")

    client.post("/admin/elections/e1/archive", data={"confirm": "yes"})

    assert fake.calls_to("POST", "/api/elections/e1/archive") == []


def test_election_delete_requires_confirmation(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": DRAFT})
    fake.add("DELETE", "/api/elections/e1/permanent", message="Deleted")

    resp = client.post("/admin/elections/e1/delete")

    assert b"This will permanently delete the election." in resp.data
    assert fake.calls == []

    resp = client.post("/admin/elections/e1/delete", data={"confirm": "yes"})

    assert resp.headers["Location"].endswith("/admin/elections")
    assert len(fake.calls_to("DELETE", "/api/elections/e1/permanent")) == 1


def test_active_election_cannot_be_deleted_from_any_screen(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "active"}})
    fake.add("DELETE", "/api/elections/e1/permanent", message="Deleted")

    client.post("/admin/elections/e1/delete", data={"confirm": "yes"})
    client.post("/admin/elections/e1/delete", data={"confirm": "yes", "back": "/admin/history",
                                                    "from_history": "1"})

    assert fake.calls_to("DELETE", "/api/elections/e1/permanent") == []


def test_completed_election_deleted_from_history(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": {**DRAFT, "status": "completed", "archived": True}})
    fake.add("DELETE", "/api/elections/e1/permanent", message="Deleted")

    resp = client.post("/admin/elections/e1/delete", data={"confirm": "yes", "back": "/admin/history"})

    assert resp.headers["Location"].endswith("/admin/history")
    assert len(fake.calls_to("DELETE", "/api/elections/e1/permanent")) == 1


def test_delete_ignores_foreign_back_url(client, fake, admin):
    fake.add("GET", "/api/elections/e1", {"election": DRAFT})
    fake.add("DELETE", "/api/elections/e1/permanent", message="Deleted")

    resp = client.post("/admin/elections/e1/delete", data={"confirm": "yes", "back": "https://evil.example/"})

    assert resp.headers["Location"].endswith("/admin/elections")


def test_user_delete_requires_confirmation(client, fake, admin):
    fake.add("DELETE", "/api/admin/users/u1", message="User deleted")

    resp = client.post("/admin/users/u1/delete")

    assert b"Delete this user?" in resp.data
    assert fake.calls == []

    resp = client.post("/admin/users/u1/delete", data={"confirm": "yes"})

    assert resp.headers["Location"].endswith("/admin/users")
    assert len(fake.calls_to("DELETE", "/api/admin/users/u1")) == 1


def test_election_create_requires_description(client, fake, admin):
    form = {"title": "Kadi Panchayat", "type": "Panchayat", "level": "Village", "status": "draft",
            "state": "Gujarat", "district": "Mehsana", "taluka": "Kadi", "villageCity": "Agol",
            "votingStartDate": "2025-03-01T09:00", "votingEndDate": "2025-03-05T17:00",
            "resultDeclarationDate": "2025-03-06T10:00"}

    resp = client.post("/admin/elections/new", data=form)

    assert b"Description is required" in resp.data
    assert fake.calls_to("POST", "/api/elections") == []
