"""Spreadsheet download response for export routes."""

from fastapi import Response

from cctv_api.services.export_service import XLSX_MEDIA_TYPE, ExportFile


def spreadsheet_response(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )
