"""Auth router: public /api/v1/auth/* endpoints.

Sign-up and sign-in happen at the identity provider. This service only
verifies the tokens it issues, plus the local credential rules below.
"""

from __future__ import annotations

from fastapi import APIRouter

from s2s.auth.schemas import CredentialCheckRequest, CredentialCheckResponse
from s2s.auth.validation import validate_email, validate_password

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post("/check-credentials", response_model=CredentialCheckResponse)
async def check_credentials(body: CredentialCheckRequest) -> CredentialCheckResponse:
    """Apply the local email and password rules. A failing rule returns 400."""
    validate_email(body.email)
    validate_password(body.password, body.confirm_password)
    return CredentialCheckResponse(valid=True, email=body.email)
