import httpx

from runpa.geo import reverse_geocode


def _client(handler):
    return httpx.Client(base_url="https://geo.test", transport=httpx.MockTransport(handler))


def test_prefers_city():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"address": {
            "city": "Biella", "town": "Cossato", "state": "Piemonte", "country": "Italia",
        }})

    with _client(handler) as c:
        loc = reverse_geocode(45.56, 8.05, client=c)

    assert loc == {"city": "Biella", "state": "Piemonte", "country": "Italia"}
    assert seen["params"]["lat"] == "45.56"
    assert seen["params"]["lon"] == "8.05"


def test_falls_back_to_town_then_village():
    def town(request):
        return httpx.Response(200, json={"address": {"town": "Cossato", "village": "Lessona"}})

    def village(request):
        return httpx.Response(200, json={"address": {"village": "Lessona", "country": "Italia"}})

    with _client(town) as c:
        assert reverse_geocode(1, 2, client=c) == {"city": "Cossato", "state": None, "country": None}
    with _client(village) as c:
        assert reverse_geocode(1, 2, client=c) == {"city": "Lessona", "state": None, "country": "Italia"}


def test_no_locality_gives_null_city():
    def handler(request):
        return httpx.Response(200, json={"address": {"state": "Piemonte", "country": "Italia"}})

    with _client(handler) as c:
        assert reverse_geocode(1, 2, client=c) == {"city": None, "state": "Piemonte", "country": "Italia"}


def test_http_error_returns_nulls(caplog):
    def handler(request):
        return httpx.Response(429, text="rate limited")

    with _client(handler) as c:
        assert reverse_geocode(1, 2, client=c) == {"city": None, "state": None, "country": None}
    assert "Geocodificación inversa fallida" in caplog.text


def test_network_error_returns_nulls():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    with _client(handler) as c:
        assert reverse_geocode(1, 2, client=c) == {"city": None, "state": None, "country": None}


def test_malformed_payload_returns_nulls():
    def not_json(request):
        return httpx.Response(200, text="<html>")

    def no_address(request):
        return httpx.Response(200, json={"error": "Unable to geocode"})

    with _client(not_json) as c:
        assert reverse_geocode(1, 2, client=c) == {"city": None, "state": None, "country": None}
    with _client(no_address) as c:
        assert reverse_geocode(1, 2, client=c) == {"city": None, "state": None, "country": None}
