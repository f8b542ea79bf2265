import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from firesafe.db.session import get_session
from firesafe.api.estimate import EstimateRequest, failure, run_estimate, success
from firesafe.services.advisor import AdvisorError, SafetyAdvisor, get_advisor

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/advice")
def advice(
    req: EstimateRequest,
    session: Session = Depends(get_session),
    advisor: SafetyAdvisor = Depends(get_advisor),
):
    result, rejected = run_estimate(req, session, "advice")
    if rejected is not None:
        return rejected

    try:
        text = advisor.advise(req.user_input(), req.package_type, result)
    except AdvisorError:
        return failure("Could not reach the safety advisor. Please try again later.", 502)

    return success({"advice": text, "estimation": result.model_dump(by_alias=True, mode="json")})
