from sqlalchemy import Column, String, DateTime, Enum, Text
from sqlalchemy.sql import func
from app.core.database import Base
import enum
import uuid

class Location(str, enum.Enum):
    ASRAMA_KAMPUS_1 = "asrama_kampus_1"
    ASRAMA_KAMPUS_2 = "asrama_kampus_2"
    ASRAMA_KAMPUS_3 = "asrama_kampus_3"

class DamageType(str, enum.Enum):
    REHAB = "rehab"
    LISTRIK = "listrik"
    AIR = "air"
    TAMAN = "taman"
    LAINNYA = "lainnya"

class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

LOCATION_LABELS = {
    Location.ASRAMA_KAMPUS_1: "Asrama Kampus 1",
    Location.ASRAMA_KAMPUS_2: "Asrama Kampus 2",
    Location.ASRAMA_KAMPUS_3: "Asrama Kampus 3",
}

def _enum_values(enum_cls):
    return [item.value for item in enum_cls]

class DamageReport(Base):
    __tablename__ = "damage_reports"

    id = Column(String(50), primary_key=True, default=lambda: f"rpt_{uuid.uuid4().hex[:12]}")
    reporter_name = Column(String(100), nullable=False)
    damage_description = Column(Text, nullable=False)
    location = Column(Enum(Location, values_callable=_enum_values), nullable=False, index=True)
    damage_type = Column(Enum(DamageType, values_callable=_enum_values), nullable=False, default=DamageType.LAINNYA)
    photo_url = Column(String(500), nullable=True)
    photo_path = Column(String(500), nullable=True)
    status = Column(Enum(ReportStatus, values_callable=_enum_values), nullable=False, default=ReportStatus.PENDING, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
