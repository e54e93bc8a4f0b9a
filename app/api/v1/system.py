from fastapi import APIRouter

from app.core.config import settings
from app.models.damage_report import LOCATION_LABELS, DamageType, ReportStatus
from app.schemas.response import ApiResponse

router = APIRouter()


@router.get("/info", response_model=ApiResponse)
async def get_system_info():
    return ApiResponse(
        code=200,
        data={
            "service": "Sistem Pelaporan Kerusakan Fasilitas API",
            "version": "1.0.0",
            "locations": [{"value": k.value, "label": v} for k, v in LOCATION_LABELS.items()],
            "damageTypes": [item.value for item in DamageType],
            "statuses": [item.value for item in ReportStatus],
            "maxPhotoSize": settings.MAX_PHOTO_SIZE,
            "sheetsExportEnabled": bool(settings.SHEETS_WEBHOOK_URL),
        },
    )
