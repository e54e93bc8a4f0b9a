"""公开报告提交与查询"""
import os

import pytest
from httpx import AsyncClient

from app.api.v1 import reports as reports_api
from app.core.config import settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

REPORT_FORM = {
    "reporter_name": "Andi",
    "damage_description": "Pipa air di dapur bocor sejak kemarin",
    "location": "asrama_kampus_2",
    "damage_type": "air",
}


@pytest.fixture
def exported_rows(monkeypatch):
    rows = []
    monkeypatch.setattr(reports_api, "dispatch_to_sheets", lambda row: rows.append(row))
    return rows


async def test_submit_report_without_photo(client: AsyncClient, exported_rows) -> None:
    response = await client.post("/api/v1/reports", data=REPORT_FORM)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"].startswith("rpt_")
    assert data["status"] == "pending"
    assert data["photoUrl"] is None

    assert len(exported_rows) == 1
    assert exported_rows[0]["reporter_name"] == "Andi"
    assert exported_rows[0]["location"] == "Asrama Kampus 2"
    assert exported_rows[0]["damage_type"] == "air"


async def test_submit_report_with_photo(client: AsyncClient, exported_rows, tmp_path) -> None:
    response = await client.post(
        "/api/v1/reports",
        data=REPORT_FORM,
        files={"photo": ("bocor.png", PNG_BYTES, "image/png")},
    )

    assert response.status_code == 200
    photo_url = response.json()["data"]["photoUrl"]
    assert photo_url.startswith("/uploads/damage-photos/reports/")
    assert photo_url.endswith(".png")

    relative = photo_url[len("/uploads/"):]
    assert os.path.exists(os.path.join(tmp_path, "uploads", relative))


async def test_submit_report_detects_type_from_content(client: AsyncClient, exported_rows) -> None:
    response = await client.post(
        "/api/v1/reports",
        data=REPORT_FORM,
        files={"photo": ("bocor", PNG_BYTES, "application/octet-stream")},
    )

    assert response.status_code == 200
    assert response.json()["data"]["photoUrl"].endswith(".png")


async def test_submit_report_rejects_non_image(client: AsyncClient, exported_rows) -> None:
    response = await client.post(
        "/api/v1/reports",
        data=REPORT_FORM,
        files={"photo": ("catatan.txt", b"bukan gambar", "text/plain")},
    )

    assert response.status_code == 400
    assert exported_rows == []


@pytest.mark.parametrize(
    "field,value",
    [
        ("location", "asrama_kampus_9"),
        ("damage_type", "gempa"),
        ("damage_description", "pendek"),
        ("reporter_name", "   "),
    ],
)
async def test_submit_report_validation(client: AsyncClient, exported_rows, field, value) -> None:
    response = await client.post("/api/v1/reports", data={**REPORT_FORM, field: value})

    assert response.status_code == 400
    assert exported_rows == []


async def test_public_list_hides_reporter(client: AsyncClient, exported_rows) -> None:
    await client.post("/api/v1/reports", data=REPORT_FORM)

    response = await client.get("/api/v1/reports")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 1
    item = data["list"][0]
    assert "reporterName" not in item
    assert "Andi" not in response.text
    assert item["locationLabel"] == "Asrama Kampus 2"


async def test_public_list_filters(client: AsyncClient, exported_rows) -> None:
    await client.post("/api/v1/reports", data=REPORT_FORM)
    await client.post(
        "/api/v1/reports",
        data={**REPORT_FORM, "location": "asrama_kampus_3", "damage_description": "Taman depan tidak terawat"},
    )

    response = await client.get("/api/v1/reports", params={"location": "asrama_kampus_3"})
    assert response.json()["data"]["total"] == 1

    response = await client.get("/api/v1/reports", params={"keyword": "Pipa"})
    assert response.json()["data"]["total"] == 1

    response = await client.get("/api/v1/reports", params={"keyword": "Andi"})
    assert response.json()["data"]["total"] == 0


async def test_completed_list(client: AsyncClient, exported_rows, make_account, auth_headers) -> None:
    headers = auth_headers(await make_account("budi@kampus.ac.id"))
    first = (await client.post("/api/v1/reports", data=REPORT_FORM)).json()["data"]["id"]
    await client.post("/api/v1/reports", data=REPORT_FORM)

    await client.patch(f"/api/v1/admin/reports/{first}/status", json={"status": "completed"}, headers=headers)

    response = await client.get("/api/v1/reports/completed")
    data = response.json()["data"]
    assert data["total"] == 1
    assert data["list"][0]["id"] == first


async def test_system_info_and_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.json() == {"status": "healthy"}

    response = await client.get("/api/v1/system/info")
    data = response.json()["data"]
    assert data["damageTypes"] == ["rehab", "listrik", "air", "taman", "lainnya"]
    assert data["sheetsExportEnabled"] is False


async def test_submit_report_rejects_oversized_photo(client: AsyncClient, exported_rows, monkeypatch) -> None:
    monkeypatch.setattr(settings, "MAX_PHOTO_SIZE", 32)

    response = await client.post(
        "/api/v1/reports",
        data=REPORT_FORM,
        files={"photo": ("besar.png", PNG_BYTES, "image/png")},
    )

    assert response.status_code == 400
    assert exported_rows == []
    assert (await client.get("/api/v1/reports")).json()["data"]["total"] == 0
