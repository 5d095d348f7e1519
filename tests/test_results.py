from digivote.results import candidate_table, csv_filename, order_published, party_totals, placeholder, results_csv, winner

ROWS = [
    {"candidateId": "c1", "name": "Ravi", "partyName": "Green", "votes": 4, "votePercentage": 40},
    {"candidateId": "c2", "name": "Meena", "partyName": None, "votes": "6", "votePercentage": 60},
    {"candidateId": "c3", "name": "Ajay", "partyName": "Green", "votes": None, "votePercentage": None},
]


def test_candidate_table_sorted_by_votes():
    table = candidate_table(ROWS)
    assert list(table["name"]) == ["Meena", "Ravi", "Ajay"]
    assert list(table["votes"]) == [6, 4, 0]


def test_party_totals_group_independents():
    totals = party_totals(ROWS).to_dict("records")
    assert totals == [{"partyName": "Independent", "votes": 6}, {"partyName": "Green", "votes": 4}]


def test_winner():
    assert winner(ROWS)["name"] == "Meena"
    assert winner([{"name": "Nobody", "votes": 0}]) is None
    assert winner([]) is None


def test_results_csv():
    buf = results_csv({"_id": "e1", "title": "Kadi Panchayat"}, ROWS)
    lines = buf.read().decode("utf-8").splitlines()
    assert lines[0] == "election,rank,candidateId,name,partyName,votes,votePercentage"
    assert lines[1].startswith("Kadi Panchayat,1,c2,Meena,Independent,6,")
    assert csv_filename({"title": "Kadi Panchayat / 2025"}) == "Kadi_Panchayat___2025_results.csv"


def test_order_published():
    elections = [
        {"_id": "up-late", "status": "upcoming", "resultDeclarationDate": "2025-06-01T00:00:00Z"},
        {"_id": "pub-old", "status": "completed", "results": {"isDeclared": True, "declaredAt": "2025-01-01T00:00:00Z"}},
        {"_id": "done", "status": "completed", "resultDeclarationDate": "2025-05-01T00:00:00Z"},
        {"_id": "up-soon", "status": "upcoming", "resultDeclarationDate": "2025-04-01T00:00:00Z"},
        {"_id": "pub-new", "status": "completed", "results": {"isDeclared": True, "declaredAt": "2025-02-01T00:00:00Z"}},
    ]
    assert [e["_id"] for e in order_published(elections)] == ["pub-new", "pub-old", "done", "up-soon", "up-late"]


def test_placeholder():
    detail = placeholder({"_id": "e1", "resultDeclarationDate": "2025-06-01"})
    assert detail["is_upcoming"] and detail["candidates"] == []
    assert detail["declaration_date"] == "2025-06-01"
