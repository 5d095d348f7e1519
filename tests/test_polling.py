import threading

from digivote.api import ApiRequestError
from digivote.polling import Poller


def test_tick_delivers_result():
    seen = []
    poller = Poller(lambda: 42, seen.append, interval=60)

    assert poller.tick()
    assert seen == [42]


def test_no_fetch_after_cancel():
    calls = []
    poller = Poller(lambda: calls.append(1), lambda r: None, interval=60)
    poller.cancel()

    assert not poller.tick()
    assert calls == []


def test_result_finishing_after_cancel_is_discarded():
    seen = []
    poller = None

    def fetch():
        poller.cancel()
        return "stale"

    poller = Poller(fetch, seen.append, interval=60)

    assert not poller.tick()
    assert seen == []


def test_errors_reported_not_raised():
    errors = []

    def fetch():
        raise ApiRequestError("down", 503)

    poller = Poller(fetch, lambda r: None, interval=60, on_error=errors.append)

    assert not poller.tick()
    assert errors[0].status == 503


def test_background_thread_stops_on_cancel():
    delivered = threading.Event()
    poller = Poller(lambda: "ok", lambda r: delivered.set(), interval=0.01).start()

    assert delivered.wait(2)
    poller.cancel()
    poller.join(2)

    assert poller.cancelled
    assert not poller._thread.is_alive()


def test_watch_elections_command(app, fake):
    fake.add("GET", "/api/elections", {"elections": [{"title": "Kadi Panchayat", "status": "active"}]})

    result = app.test_cli_runner().invoke(
        args=["watch-elections", "--token", "adm", "--count", "1", "--interval", "0.01"])

    assert result.exit_code == 0
    assert "Kadi Panchayat" in result.output
    assert fake.calls[0].headers["Authorization"] == "Bearer adm"
