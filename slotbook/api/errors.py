"""Translate service result objects into HTTP responses"""
from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from slotbook.core.exceptions import UNEXPECTED_ERROR_CODE

ERROR_STATUS_CODES = {
    "provider_not_found": 404,
    "service_not_found": 404,
    "booking_not_found": 404,
    "validation_error": 422,
    "slot_unavailable": 409,
    "token_invalid": 410,
    "transient_store_error": 503,
    UNEXPECTED_ERROR_CODE: 500,
}


def status_for(error_code: str) -> int:
    return ERROR_STATUS_CODES.get(error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def result_response(result: BaseModel, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """JSON body is always the full result; only the status code varies"""
    error_code = getattr(result, "error_code", None)
    status_code = status_for(error_code) if error_code else success_status
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))
