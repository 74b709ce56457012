"""
Import/export API routes - CSV rosters in and out.

POST /api/import takes one or more files and runs them through the
reconciler; unreadable files and failed rows are reported in the summary,
never as an HTTP error. Export and templates are served as CSV downloads.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from smartschool.dependencies import get_gateway
from smartschool.services.csv_codec import build_template, export_students
from smartschool.services.gateway import PersistenceGateway
from smartschool.services.reconciler import ImportFile, ImportSummary, Reconciler
from smartschool.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


# ── Pydantic schemas ─────────────────────────────────────────

class UploadedFile(BaseModel):
    name: str = Field(..., description="Original file name")
    content: str = Field(..., description="File text (CSV, comma or semicolon separated)")


class ImportRequest(BaseModel):
    files: List[UploadedFile] = Field(..., min_length=1)


def _csv_download(text: str, filename: str) -> Response:
    return Response(
        content=text.encode("utf-8"),
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(filename)},
    )


@router.post("/api/import", response_model=ImportSummary)
def import_rosters(request: ImportRequest, gateway: PersistenceGateway = Depends(get_gateway)):
    """
    Import roster/marks files.

    Rows are matched to existing students by registration number, then roll
    number; matched students only get the columns the file carries.
    """
    files = [ImportFile(name=f.name, content=f.content) for f in request.files]
    _, summary = Reconciler(gateway).import_files(files)
    return summary


@router.get("/api/export")
def export_roster(gateway: PersistenceGateway = Depends(get_gateway)):
    """Every student with bio-data and both semesters' marks."""
    students = gateway.load_all()
    log_with_context(logger, "INFO", "Exporting {} students".format(len(students)))
    return _csv_download(export_students(students), "school_data_export.csv")


@router.get("/api/templates/{category}")
def download_template(category: str):
    """Import template: bio, sem1 or sem2."""
    try:
        text = build_template(category)
    except ValueError:
        raise HTTPException(status_code=404, detail="Unknown template category: {}".format(category))
    return _csv_download(text, "{}_template.csv".format(category))
