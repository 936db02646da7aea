"""Bulk import routes, mounted under /admin/agencies."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, UploadFile, status

from agency_import.api.dependencies import CurrentAdmin, Repository, get_config
from agency_import.api.errors import PAYLOAD_TOO_LARGE, ApiError
from agency_import.api.schemas import (
    BulkImportResponseModel,
    CommitRequest,
    DecodeResponse,
    PreviewRequest,
    PreviewResponse,
)
from agency_import.logging.error_log import ErrorLogBuffer
from agency_import.models.config_models import ImportConfig
from agency_import.services.committer import commit_rows
from agency_import.services.validator import validate_rows
from agency_import.spreadsheet.reader import decode_file
from agency_import.spreadsheet.template import TEMPLATE_FILENAME, build_template_csv

logger = logging.getLogger(__name__)

router = APIRouter()

Config = Annotated[ImportConfig, Depends(get_config)]


def _too_large(limit: int) -> ApiError:
    return ApiError(
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        PAYLOAD_TOO_LARGE,
        f"File is too large. Maximum size is {limit / (1024 * 1024):g} MB.",
    )


@router.post("/bulk-import/decode", response_model=DecodeResponse, response_model_exclude_none=True)
def decode_upload(file: UploadFile, config: Config, operator: CurrentAdmin):
    # must stay sync: pandas/openpyxl parsing runs in the threadpool
    limit = config.upload.max_file_bytes
    if file.size is not None and file.size > limit:
        raise _too_large(limit)
    content = file.file.read(limit + 1)
    if len(content) > limit:
        raise _too_large(limit)
    result = decode_file(
        content,
        file.filename,
        file.content_type,
        max_bytes=limit,
        list_delimiter=config.upload.list_delimiter,
    )
    return result.to_dict()


@router.post("/bulk-import/preview", response_model=PreviewResponse)
def preview_rows(body: PreviewRequest, repository: Repository, config: Config, operator: CurrentAdmin):
    reference = repository.fetch_reference_data()
    preview = validate_rows(body.raw_rows(), reference, list_delimiter=config.upload.list_delimiter)
    return preview.to_dict()


@router.post("/bulk-import", response_model=BulkImportResponseModel, response_model_exclude_none=True)
def import_rows(body: CommitRequest, repository: Repository, config: Config, operator: CurrentAdmin):
    error_log = ErrorLogBuffer(config.logging.error_log_dir, source="api")
    try:
        response = commit_rows(
            repository,
            body.raw_rows(),
            max_slug_attempts=config.commit.max_slug_attempts,
            list_delimiter=config.upload.list_delimiter,
            error_log=error_log,
        )
    finally:
        log_path = error_log.flush()
    summary = response.summary
    logger.info(
        "bulk import operator=%s total=%d created=%d skipped=%d failed=%d",
        operator.id,
        summary.total,
        summary.created,
        summary.skipped,
        summary.failed,
    )
    if log_path is not None:
        logger.info("error log written: %s", log_path)
    return response.to_dict()


@router.get("/template")
def download_template(operator: CurrentAdmin):
    return Response(
        content=build_template_csv(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )
