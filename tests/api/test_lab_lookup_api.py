import pytest

LOOKUP = "/api/v1/lab-results/lookup"


@pytest.mark.parametrize("params, message", [
    ({"phone": "9841234567"}, "Phone number and order number are required"),
    ({"phone": "12345", "order_number": "LAB-20250101-0001"}, "Invalid phone number format"),
    ({"phone": "9841234567", "order_number": "LAB-1"}, "Invalid order number format. Expected: LAB-XXXXXXXX-XXXX"),
])
async def test_lookup_validation(client, params, message):
    response = await client.get(LOOKUP, params=params)
    assert response.status_code == 400
    assert response.json() == {"found": False, "message": message}


async def test_lookup_unknown_order(client):
    response = await client.get(LOOKUP, params={"phone": "9841234567", "order_number": "LAB-20250101-0001"})
    assert response.status_code == 404
    assert response.json()["found"] is False


async def test_lookup_is_rate_limited(client):
    params = {"phone": "9841234567", "order_number": "LAB-20250101-0001"}
    headers = {"X-Forwarded-For": "198.51.100.7"}
    for _ in range(10):
        response = await client.get(LOOKUP, params=params, headers=headers)
        assert response.status_code == 404
    response = await client.get(LOOKUP, params=params, headers=headers)
    assert response.status_code == 429
    assert response.json() == {"found": False, "message": "Too many requests. Please try again in a minute."}
