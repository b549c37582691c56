"""Payment link endpoints (API-key protected)."""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field

from peanutlink.errors import InvalidRequestError, IssuanceError
from peanutlink.issuance.workflow import LinkIssuanceWorkflow

logger = logging.getLogger(__name__)

router = APIRouter()

UNAUTHORIZED_MESSAGE = "Unauthorized: Invalid or missing API key."


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None),
) -> bool:
    """Verify the x-api-key header. An unset API_KEY rejects everything."""
    expected = request.app.state.settings.api_key
    if not x_api_key or not expected or not hmac.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_MESSAGE)
    return True


def get_workflow(request: Request) -> LinkIssuanceWorkflow:
    """Issuance workflow created at startup."""
    workflow = getattr(request.app.state, "workflow", None)
    if workflow is None:
        raise HTTPException(status_code=503, detail="Service is starting, please retry shortly.")
    return workflow


class CreateLinkResponse(BaseModel):
    """Claim link and broadcast transaction hashes."""

    link: str
    tx_hashes: list[str] = Field(..., serialization_alias="txHashes")


@router.post(
    "/create-link",
    response_model=CreateLinkResponse,
    response_model_by_alias=True,
    dependencies=[Depends(require_api_key)],
)
async def create_link(
    request: Request,
    workflow: LinkIssuanceWorkflow = Depends(get_workflow),
) -> CreateLinkResponse:
    """Create a funded claim link.

    The body is read only after the API key has been checked.
    """
    body = await request.body()
    if body.strip():
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Malformed JSON request body.")
    else:
        payload = {}

    try:
        result = await workflow.create_link(payload)
    except InvalidRequestError as e:
        logger.info(f"Rejected create-link request: {e.violations}")
        raise HTTPException(status_code=e.status_code, detail=e.public_message)
    except IssuanceError as e:
        logger.error(f"Error creating Peanut Link: {type(e).__name__}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.public_message)
    except Exception:
        logger.exception("Error creating Peanut Link")
        raise HTTPException(status_code=500, detail="Failed to create Peanut Link.")

    return CreateLinkResponse(link=result.link, tx_hashes=result.tx_hashes)
