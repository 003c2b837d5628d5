"""Answer Check: scores a guess against a canonical answer."""

from fastapi import APIRouter, Depends

from rebuzzle.api.dependencies import get_answer_checker
from rebuzzle.schemas.attempt import AnswerCheckRequest, AnswerCheckResponse
from rebuzzle.services.answer_checker import AnswerChecker

router = APIRouter(prefix="/api/v1/answers", tags=["answers"])


@router.post("/check", response_model=AnswerCheckResponse)
async def check_answer(
    body: AnswerCheckRequest,
    checker: AnswerChecker = Depends(get_answer_checker),
):
    result = await checker.check(body.guess, body.answer)
    return AnswerCheckResponse.from_result(result)
