import httpx
import pytest

from app.dependencies import get_gallery_service
from app.main import app
from app.utils.jwt_auth import create_access_token
from app.utils.rate_limit import limiter
from conftest import make_image_bytes


@pytest.fixture
async def client(service):
    app.dependency_overrides[get_gallery_service] = lambda: service
    limiter.enabled = False
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token({'sub': 'admin-1'})}"}


async def _upload(client, headers, data=None, filename="terrace.jpg", mime="image/jpeg", **fields):
    form = {"title": "Elegant Dining Room", "category": "interior"}
    form.update(fields)
    return await client.post(
        "/api/cms/gallery/images",
        headers=headers,
        files={"image": (filename, data if data is not None else make_image_bytes(), mime)},
        data=form,
    )


async def test_upload_requires_token(client):
    response = await _upload(client, {})

    assert response.status_code == 401


async def test_upload_rejects_invalid_token(client):
    response = await _upload(client, {"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


async def test_upload_creates_image(client, auth_headers, storage):
    response = await _upload(client, auth_headers, tags="wine, evening", is_featured="false")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["title"] == "Elegant Dining Room"
    assert data["category"] == "interior"
    assert data["tags"] == ["wine", "evening"]
    assert data["is_featured"] is False
    assert data["is_active"] is True
    assert data["uploaded_by"] == "admin-1"
    assert data["degraded"] is False
    assert len(data["image_variants"]) == 4
    assert len(storage.objects) == 5


async def test_upload_then_get(client, auth_headers):
    created = (await _upload(client, auth_headers)).json()["data"]

    response = await client.get(f"/api/gallery/images/{created['id']}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "Elegant Dining Room"
    assert data["original_url"]


async def test_upload_bad_extension_is_client_error(client, auth_headers, storage):
    response = await _upload(client, auth_headers, filename="menu.gif", mime="image/gif")

    assert response.status_code == 400
    assert response.json()["error"] == "FILE_UPLOAD_ERROR"
    assert storage.put_calls == []


async def test_upload_blank_title_is_client_error(client, auth_headers, storage):
    response = await _upload(client, auth_headers, title="  ")

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"
    assert storage.put_calls == []


async def test_upload_missing_title_is_client_error(client, auth_headers):
    response = await client.post(
        "/api/cms/gallery/images",
        headers=auth_headers,
        files={"image": ("terrace.jpg", make_image_bytes(), "image/jpeg")},
    )

    assert response.status_code == 400


async def test_upload_undecodable_image_is_degraded_success(client, auth_headers):
    response = await _upload(client, auth_headers, data=b"garbage" * 100, filename="bad.jpg")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["image_variants"] == []
    assert data["degraded"] is True


async def test_storage_outage_is_server_error(client, auth_headers, storage):
    storage.fail_put = lambda path: True

    response = await _upload(client, auth_headers)

    assert response.status_code == 500
    assert response.json()["success"] is False


async def test_list_and_featured(client, auth_headers):
    await _upload(client, auth_headers, display_order="2")
    await _upload(client, auth_headers, display_order="1", is_featured="false")

    response = await client.get("/api/gallery/images", params={"limit": 1})
    body = response.json()
    assert response.status_code == 200
    assert body["pagination"] == {"total": 2, "limit": 1, "offset": 0, "has_more": True}
    assert body["data"][0]["display_order"] == 1

    featured = (await client.get("/api/gallery/featured")).json()["data"]
    assert [img["display_order"] for img in featured] == [2]


async def test_list_rejects_out_of_range_limit(client):
    response = await client.get("/api/gallery/images", params={"limit": 500})

    assert response.status_code == 400


async def test_get_unknown_image_is_not_found(client):
    response = await client.get("/api/gallery/images/missing")

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND_ERROR"


async def test_update_image(client, auth_headers):
    created = (await _upload(client, auth_headers)).json()["data"]

    response = await client.put(
        f"/api/cms/gallery/images/{created['id']}",
        headers=auth_headers,
        json={"description": "Candlelit tables", "is_active": False},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["description"] == "Candlelit tables"
    assert data["is_active"] is False
    assert data["title"] == "Elegant Dining Room"


async def test_update_with_no_fields_is_client_error(client, auth_headers):
    created = (await _upload(client, auth_headers)).json()["data"]

    response = await client.put(
        f"/api/cms/gallery/images/{created['id']}", headers=auth_headers, json={}
    )

    assert response.status_code == 400


async def test_delete_image(client, auth_headers, storage):
    created = (await _upload(client, auth_headers)).json()["data"]

    response = await client.delete(f"/api/cms/gallery/images/{created['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert (await client.get(f"/api/gallery/images/{created['id']}")).status_code == 404
    assert storage.objects == {}


async def test_reorder(client, auth_headers):
    first = (await _upload(client, auth_headers, filename="a.jpg")).json()["data"]
    second = (await _upload(client, auth_headers, filename="b.jpg")).json()["data"]

    response = await client.put(
        "/api/cms/gallery/reorder",
        headers=auth_headers,
        json={"imageOrders": [
            {"id": first["id"], "display_order": 3},
            {"id": second["id"], "display_order": 1},
        ]},
    )

    assert response.status_code == 200
    listed = (await client.get("/api/gallery/images")).json()["data"]
    assert [img["id"] for img in listed] == [second["id"], first["id"]]


async def test_reorder_rejects_duplicates(client, auth_headers):
    response = await client.put(
        "/api/cms/gallery/reorder",
        headers=auth_headers,
        json={"imageOrders": [{"id": "a", "display_order": 1}, {"id": "a", "display_order": 2}]},
    )

    assert response.status_code == 400


async def test_health(client):
    response = await client.get("/health")

    assert response.json() == {"status": "healthy"}


async def test_update_with_null_flag_is_client_error(client, auth_headers):
    created = (await _upload(client, auth_headers)).json()["data"]

    response = await client.put(
        f"/api/cms/gallery/images/{created['id']}",
        headers=auth_headers,
        json={"is_active": None},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"
    fetched = (await client.get(f"/api/gallery/images/{created['id']}")).json()["data"]
    assert fetched["is_active"] is True
