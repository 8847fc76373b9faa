import pytest

from fleetdesk import cli


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def fake_request(method, url, **kwargs):
        recorded.append((method, url, kwargs))
        return FakeResponse(200, {"ok": True})

    monkeypatch.setattr(cli.requests, "request", fake_request)
    return recorded


def run(monkeypatch, *argv):
    monkeypatch.setattr("sys.argv", ["fleetdesk-admin", "--host", "http://backend:8000/", *argv])
    cli.main()


def test_parser_knows_the_commands():
    args = cli.build_parser().parse_args(["available", "--from", "2030-01-01", "--to", "2030-01-05"])
    assert (args.command, args.start, args.end) == ("available", "2030-01-01", "2030-01-05")


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_active_rentals(monkeypatch, calls):
    run(monkeypatch, "rentals", "--active")
    assert calls[0][:2] == ("GET", "http://backend:8000/api/rentals/active")


def test_confirm_with_client_requests_a_rental(monkeypatch, calls):
    run(monkeypatch, "confirm", "--request", "4", "--client", "9")
    method, url, kwargs = calls[0]
    assert (method, url) == ("POST", "http://backend:8000/api/booking-requests/4/confirm")
    assert kwargs["json"] == {"createRental": True, "adminNotes": None, "clientId": 9}


def test_rent_sends_camel_case_body(monkeypatch, calls):
    run(
        monkeypatch,
        "rent", "--vehicle", "1", "--client", "2",
        "--start", "2030-01-01T10:00:00Z", "--end", "2030-01-03T10:00:00Z",
        "--mileage", "100", "--rate", "900",
    )
    body = calls[0][2]["json"]
    assert body["vehicleId"] == 1
    assert body["rateType"] == "daily"
    assert body["rateAmount"] == 900
    assert body["bookingRequestId"] is None


def test_rent_for_booking_request(monkeypatch, calls):
    run(
        monkeypatch,
        "rent", "--vehicle", "1", "--client", "2",
        "--start", "2030-01-01T10:00:00Z", "--end", "2030-01-03T10:00:00Z",
        "--mileage", "100", "--rate", "900", "--booking", "7",
    )
    assert calls[0][2]["json"]["bookingRequestId"] == 7


def test_send_exits_on_error(monkeypatch, capsys):
    monkeypatch.setattr(cli.requests, "request", lambda *a, **kw: FakeResponse(409, {"error": "busy"}))
    with pytest.raises(SystemExit) as info:
        cli.send("GET", "http://backend", "/api/vehicles")
    assert info.value.code == 1
    captured = capsys.readouterr()
    assert captured.err.strip() == "GET /api/vehicles failed with HTTP 409: busy"
    assert captured.out == ""


def test_send_prints_json_reply(monkeypatch, capsys):
    monkeypatch.setattr(cli.requests, "request", lambda *a, **kw: FakeResponse(200, {"status": "ok"}))
    assert cli.send("GET", "http://backend", "/api/health") == {"status": "ok"}
    assert '"status": "ok"' in capsys.readouterr().out
