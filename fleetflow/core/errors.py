"""
fleetflow/core/errors.py
─────────────────────────
Error taxonomy shared by every service and router.

Services raise these; the handlers registered in fleetflow.main render them
as {"error": <code>, "message": <text>} with the matching status code. No
SQLAlchemy or identity-provider exception is allowed to reach a client.

  ValidationError       400  caller-fixable input problem
  WeakCredentialError   400  password below the provider's strength floor
  UnauthenticatedError  401  missing or unverifiable bearer credential
  ForbiddenError        403  authenticated but not permitted (no detail)
  NotFoundError         404  token or resource does not exist
  EmailTakenError       409  identity already registered for the email
  InviteExpiredError    410  invitation past expires_at
  InviteUsedError       410  invitation already redeemed
  UpstreamError         502  store or identity provider call failed
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)


class FleetFlowError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    message: str = "Request failed."

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(FleetFlowError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    message = "Missing or malformed fields."


class WeakCredentialError(ValidationError):
    code = "weak_password"
    message = "Password is too weak."


class UnauthenticatedError(FleetFlowError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    message = "Could not validate credentials."


class ForbiddenError(FleetFlowError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "Forbidden."


class NotFoundError(FleetFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Resource not found."


class InviteNotFoundError(NotFoundError):
    code = "invite_not_found"
    message = "Invite not found. Check that the link is complete."


class ConflictError(FleetFlowError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    message = "Request conflicts with the current state."


class EmailTakenError(ConflictError):
    code = "email_taken"
    message = "Email is already registered."


class InviteExpiredError(ConflictError):
    status_code = status.HTTP_410_GONE
    code = "invite_expired"
    message = "This invite has expired. Ask your admin to send a new one."


class InviteUsedError(ConflictError):
    status_code = status.HTTP_410_GONE
    code = "invite_used"
    message = "This invite has already been used. Ask your admin for a new one if you still need access."


class UpstreamError(FleetFlowError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_error"
    message = "A backing service failed. Please try again."


# ─────────────────────────────────────────────────────────────────────────
# Handlers
# ─────────────────────────────────────────────────────────────────────────

async def fleetflow_error_handler(request: Request, exc: FleetFlowError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def _format_validation_errors(errors) -> str:
    messages = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc)
        messages.append(f"{field}: {err.get('msg')}" if field else err.get("msg", ""))
    return "; ".join(messages) or ValidationError.message


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    err = ValidationError(_format_validation_errors(exc.errors()))
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = FleetFlowError()
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FleetFlowError, fleetflow_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
