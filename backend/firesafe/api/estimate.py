from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlmodel import Session

from firesafe.db.session import get_session
from firesafe.models.estimate import EstimationResult, PackageType, UserInput
from firesafe.services.config_store import ConfigStore, optional_config
from firesafe.services.defaults import BUILDING_TYPE_INFO, PACKAGE_INFO, applicable_packages
from firesafe.services.estimator import estimate

logger = logging.getLogger(__name__)
router = APIRouter()


class EstimateRequest(UserInput):
    """User input fields plus the package and, optionally, a full configuration."""

    package_type: PackageType = PackageType.SMART
    config: Optional[Dict[str, Any]] = None

    def user_input(self) -> UserInput:
        return UserInput(**self.model_dump(include=set(UserInput.model_fields)))


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"success": True, "data": data, "timestamp": timestamp()}, status_code=status_code)


def failure(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


def check_package(req: EstimateRequest) -> Optional[JSONResponse]:
    allowed = applicable_packages(req.building_type)
    if not allowed:
        logger.warning("Estimate requested for unsupported building type %s", req.building_type.value)
        return failure(f"{req.building_type.value} buildings are not estimated", 422)
    if req.package_type not in allowed:
        logger.warning("Package %s not applicable to %s", req.package_type.value, req.building_type.value)
        return failure(
            "%s package is not available for %s buildings (allowed: %s)" % (
                req.package_type.value, req.building_type.value, ", ".join(p.value for p in allowed)),
            422,
        )
    return None


def run_estimate(
    req: EstimateRequest, session: Session, action: str = "estimate",
) -> Tuple[Optional[EstimationResult], Optional[JSONResponse]]:
    """Check the package, resolve the configuration for ``req`` and run the engine.

    Returns ``(result, None)``, or ``(None, response)`` carrying the failure envelope.
    """
    rejected = check_package(req)
    if rejected is not None:
        return None, rejected

    try:
        config = optional_config(req.config, ConfigStore(session))
    except ValueError as e:
        logger.warning("Invalid configuration in %s request: %s", action, e)
        return None, failure("Invalid configuration.", 422)

    try:
        return estimate(req.user_input(), req.package_type, config), None
    except Exception as e:
        logger.exception("Estimation failed for %s request: %s", action, e)
        return None, failure("Internal server error while estimating.", 500)


@router.post("/estimate")
def estimate_cost(req: EstimateRequest, session: Session = Depends(get_session)):
    logger.info(
        "Estimate requested building=%s package=%s area=%s floors=%s",
        req.building_type.value, req.package_type.value, req.total_area, req.floors,
    )
    result, rejected = run_estimate(req, session)
    if rejected is not None:
        return rejected

    logger.info("Estimate total=%s items=%d", result.total_cost, len(result.equipment_list))
    return success(result.model_dump(by_alias=True, mode="json"))


@router.get("/building-types")
async def building_types():
    return [
        {
            "type": building_type.value,
            "label": info["label"],
            "icon": info["icon"],
            "description": info["description"],
            "technicalNotes": info["technical_notes"],
            "applicablePackages": [p.value for p in info["applicable_packages"]],
        }
        for building_type, info in BUILDING_TYPE_INFO.items()
    ]


@router.get("/packages")
async def packages():
    return [{"type": p.value, **info} for p, info in PACKAGE_INFO.items()]
