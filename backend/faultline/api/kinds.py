# backend/faultline/api/kinds.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from faultline import schemas
from faultline.services.diagnostics.taxonomy import KIND_PROFILES, ErrorKind

router = APIRouter(prefix="/kinds", tags=["kinds"])


def kind_info(kind: ErrorKind) -> schemas.KindInfo:
    profile = KIND_PROFILES[kind]
    return schemas.KindInfo(
        kind=kind.value,
        code=profile.code,
        message=profile.message,
        http_status=int(profile.http_status),
        exit_code=int(profile.exit_code),
        retryable=profile.retryable,
    )


@router.get("", response_model=list[schemas.KindInfo])
def list_kinds() -> list[schemas.KindInfo]:
    """
    Return every error kind with its default code, HTTP status and exit code.

    Clients can use this to map `errorCode`/`code` pairs from error
    responses without hard-coding the table.
    """
    return [kind_info(kind) for kind in ErrorKind]


@router.get("/{name}", response_model=schemas.KindInfo)
def get_kind(name: str) -> schemas.KindInfo:
    try:
        kind = ErrorKind(name)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown error kind: {name}") from None
    return kind_info(kind)
