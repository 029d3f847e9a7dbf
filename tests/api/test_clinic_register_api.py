import json

API = "/api/v1/clinic"

FORM = {
    "name": "Himalayan Eye Care",
    "type": "CLINIC",
    "address": "Baneshwor, Kathmandu",
    "phone": "01-4412345",
    "email": "Info@HimalayanEye.com",
}


async def test_check_slug(client, clinic):
    response = await client.get(f"{API}/check-slug", params={"slug": "sunrise-clinic"})
    assert response.json() == {"available": False, "error": "This subdomain is already taken"}

    response = await client.get(f"{API}/check-slug", params={"slug": "api"})
    assert response.json() == {"available": False, "error": "This subdomain is reserved"}

    response = await client.get(f"{API}/check-slug", params={"slug": "Himalayan-Eye"})
    assert response.json() == {"available": True}


async def test_check_slug_requires_parameter(client):
    response = await client.get(f"{API}/check-slug")
    assert response.status_code == 400
    assert response.json() == {"available": False, "error": "Slug parameter is required"}


async def test_register_clinic(client, make_user, tmp_path):
    user, headers = await make_user(email="newowner@example.com", role="PROFESSIONAL")
    response = await client.post(
        f"{API}/register",
        data={**FORM, "services": json.dumps(["Eye checkup"]), "slug": "himalayan-eye"},
        files={"logo": ("logo.png", b"\x89PNG fake", "image/png")},
        headers=headers,
    )
    assert response.status_code == 201
    clinic = response.json()["clinic"]
    assert clinic["slug"] == "himalayan-eye"
    assert clinic["verified"] is False
    assert list((tmp_path / "clinics").iterdir())

    # the registering user becomes owner of the unverified clinic
    response = await client.get(f"{API}/permissions", headers={**headers, "X-Clinic-Id": clinic["id"]})
    assert response.status_code == 200
    assert response.json()["role"] == "OWNER"
    assert response.json()["roleLabel"] == "Owner"

    # clinic work stays locked until an admin verifies the clinic
    response = await client.get(f"{API}/staff", headers={**headers, "X-Clinic-Id": clinic["id"]})
    assert response.status_code == 403
    assert response.json() == {"error": "Clinic is pending verification", "code": "not_verified"}


async def test_register_clinic_generates_slug(client, make_user):
    _, headers = await make_user(email="newowner@example.com", role="PROFESSIONAL")
    response = await client.post(f"{API}/register", data=FORM, headers=headers)
    assert response.status_code == 201
    assert response.json()["clinic"]["slug"].startswith("himalayan-eye-care-")


async def test_register_clinic_validation(client, make_user):
    _, headers = await make_user(email="newowner@example.com", role="PROFESSIONAL")

    response = await client.post(f"{API}/register", data={**FORM, "type": "SPA"}, headers=headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Valid clinic type is required"}

    response = await client.post(f"{API}/register", data={**FORM, "phone": "12345"}, headers=headers)
    assert response.json() == {"error": "Invalid phone number format"}

    response = await client.post(f"{API}/register", data={**FORM, "timings": "{not json"}, headers=headers)
    assert response.json() == {"error": "Invalid timings format"}

    response = await client.post(
        f"{API}/register",
        data=FORM,
        files={"logo": ("logo.gif", b"GIF89a", "image/gif")},
        headers=headers,
    )
    assert response.json() == {"error": "Logo must be JPG or PNG"}


async def test_register_clinic_rejects_taken_slug(client, clinic, make_user):
    _, headers = await make_user(email="newowner@example.com", role="PROFESSIONAL")
    response = await client.post(f"{API}/register", data={**FORM, "slug": "sunrise-clinic"}, headers=headers)
    assert response.status_code == 400
    assert response.json() == {"error": "This subdomain is already taken"}


async def test_register_clinic_requires_login(client):
    response = await client.post(f"{API}/register", data=FORM)
    assert response.status_code == 401


async def test_permissions_for_staff_role(client, add_staff):
    _, headers = await add_staff("RECEPTIONIST", "front@example.com")
    response = await client.get(f"{API}/permissions", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "RECEPTIONIST"
    assert "reception" in body["permissions"]
    assert "billing" not in body["permissions"]
