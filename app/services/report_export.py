import io
from typing import Iterable, Optional

import pandas as pd

from app.models.damage_report import LOCATION_LABELS, DamageReport

EXPORT_COLUMNS = [
    "ID",
    "Pelapor",
    "Deskripsi",
    "Lokasi",
    "Jenis Kerusakan",
    "Status",
    "Foto",
    "Dibuat",
    "Diperbarui",
]


def _naive(value):
    # Excel 不支持带时区的时间
    if value is not None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


class ReportExporter:
    """把损坏报告导出为 Excel 文件"""

    def __init__(self, reports: Iterable[DamageReport]):
        self.reports = list(reports)
        self.df: Optional[pd.DataFrame] = None

    def build_frame(self) -> pd.DataFrame:
        rows = []
        for report in self.reports:
            rows.append(
                {
                    "ID": report.id,
                    "Pelapor": report.reporter_name,
                    "Deskripsi": report.damage_description,
                    "Lokasi": LOCATION_LABELS.get(report.location, str(report.location)),
                    "Jenis Kerusakan": getattr(report.damage_type, "value", report.damage_type),
                    "Status": getattr(report.status, "value", report.status),
                    "Foto": report.photo_url or "",
                    "Dibuat": _naive(report.created_at),
                    "Diperbarui": _naive(report.updated_at),
                }
            )
        self.df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
        return self.df

    def to_excel_bytes(self) -> bytes:
        """生成 xlsx 内容"""
        if self.df is None:
            self.build_frame()
        buffer = io.BytesIO()
        try:
            self.df.to_excel(buffer, index=False, sheet_name="Laporan", engine="openpyxl")
        except Exception as e:
            raise ValueError(f"文件生成失败: {str(e)}")
        return buffer.getvalue()
