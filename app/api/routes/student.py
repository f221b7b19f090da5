"""学生端接口：/api/student/*。"""
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.common import ApiResponse
from app.schemas.student import (
    CourseDataResponse,
    ExerciseDataResponse,
    GameMetadataResponse,
    JoinGameRequest,
    LastSolutionResponse,
    LeaveGameRequest,
    LoadGameRequest,
    ModuleDataResponse,
    SaveGameRequest,
    SetGameLangRequest,
    SubmitSolutionRequest,
    UnlockRequest,
)
from app.services import student_service
from app.services.grading_service import SubmissionDetails

router = APIRouter()


@router.get("/get_available_games", response_model=ApiResponse[list[int]])
async def get_available_games(db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await student_service.get_available_games(db))


@router.post("/join_game", response_model=ApiResponse[int])
async def join_game(body: JoinGameRequest, db: AsyncSession = Depends(get_db)):
    registration_id = await student_service.join_game(db, body.player_id, body.game_id, body.language)
    return ApiResponse.ok(registration_id)


@router.post("/save_game", response_model=ApiResponse[bool])
async def save_game(body: SaveGameRequest, db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await student_service.save_game(db, body.player_registrations_id, body.game_state))


@router.post("/load_game", response_model=ApiResponse[Any])
async def load_game(body: LoadGameRequest, db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await student_service.load_game(db, body.player_registrations_id))


@router.post("/leave_game", response_model=ApiResponse[None])
async def leave_game(body: LeaveGameRequest, db: AsyncSession = Depends(get_db)):
    await student_service.leave_game(db, body.player_id, body.game_id)
    return ApiResponse.ok()


@router.post("/set_game_lang", response_model=ApiResponse[bool])
async def set_game_lang(body: SetGameLangRequest, db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await student_service.set_game_lang(db, body.player_id, body.game_id, body.language))


@router.get("/get_player_games", response_model=ApiResponse[list[int]])
async def get_player_games(
    player_id: int = Query(...),
    active: bool = Query(False, description="只返回未离开且游戏进行中的报名"),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse.ok(await student_service.get_player_games(db, player_id, active))


@router.get("/get_game_metadata/{registration_id}", response_model=ApiResponse[GameMetadataResponse])
async def get_game_metadata(registration_id: int, db: AsyncSession = Depends(get_db)):
    registration, game = await student_service.get_game_metadata(db, registration_id)
    return ApiResponse.ok(
        GameMetadataResponse(
            registration_id=registration.id,
            progress=registration.progress,
            joined_at=registration.joined_at,
            left_at=registration.left_at,
            language=registration.language,
            game_id=game.id,
            game_title=game.title,
            game_active=game.active,
            game_description=game.description,
            game_programming_language=game.programming_language,
            game_total_exercises=game.total_exercises,
            game_start_date=game.start_date,
            game_end_date=game.end_date,
        )
    )


@router.get("/get_course_data", response_model=ApiResponse[CourseDataResponse])
async def get_course_data(
    game_id: int = Query(...),
    language: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    data = await student_service.get_course_data(db, game_id, language)
    return ApiResponse.ok(
        CourseDataResponse(
            gamification_rule_conditions=data.course.gamification_rule_conditions,
            gamification_complex_rules=data.course.gamification_complex_rules,
            gamification_rule_results=data.course.gamification_rule_results,
            module_ids=data.module_ids,
        )
    )


@router.get("/get_module_data", response_model=ApiResponse[ModuleDataResponse])
async def get_module_data(
    module_id: int = Query(...),
    language: str = Query(...),
    programming_language: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    data = await student_service.get_module_data(db, module_id, language, programming_language)
    module = data.module
    return ApiResponse.ok(
        ModuleDataResponse(
            order=module.order,
            title=module.title,
            description=module.description,
            start_date=module.start_date,
            end_date=module.end_date,
            exercise_ids=data.exercise_ids,
        )
    )


@router.get("/get_exercise_data", response_model=ApiResponse[ExerciseDataResponse])
async def get_exercise_data(
    exercise_id: int = Query(...),
    game_id: int = Query(...),
    player_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    data = await student_service.get_exercise_data(db, exercise_id, game_id, player_id)
    ex = data.exercise
    return ApiResponse.ok(
        ExerciseDataResponse(
            order=ex.order,
            title=ex.title,
            description=ex.description,
            init_code=ex.init_code,
            pre_code=ex.pre_code,
            post_code=ex.post_code,
            test_code=ex.test_code,
            check_source=ex.check_source,
            mode=ex.mode,
            mode_parameters=ex.mode_parameters,
            difficulty=ex.difficulty,
            hidden=data.status.hidden,
            locked=data.status.locked,
        )
    )


@router.post("/submit_solution", response_model=ApiResponse[bool])
async def submit_solution(body: SubmitSolutionRequest, db: AsyncSession = Depends(get_db)):
    """返回值为本次提交是否为该玩家在该游戏中对这道题的首次答对。"""
    details = SubmissionDetails(
        client=body.client,
        submitted_code=body.submitted_code,
        metrics=body.metrics,
        result_description=body.result_description,
        feedback=body.feedback,
        entered_at=body.entered_at,
    )
    first_solution = await student_service.submit_solution(
        db, body.player_id, body.game_id, body.exercise_id, body.result, body.earned_rewards, details
    )
    return ApiResponse.ok(first_solution)


@router.post("/unlock", response_model=ApiResponse[None])
async def unlock(body: UnlockRequest, db: AsyncSession = Depends(get_db)):
    await student_service.unlock(db, body.player_id, body.exercise_id)
    return ApiResponse.ok()


@router.get("/get_last_solution", response_model=ApiResponse[LastSolutionResponse])
async def get_last_solution(
    player_id: int = Query(...),
    exercise_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    submission = await student_service.get_last_solution(db, player_id, exercise_id)
    if submission is None:
        return ApiResponse.ok(None)
    return ApiResponse.ok(
        LastSolutionResponse(
            submitted_code=submission.submitted_code,
            metrics=submission.metrics,
            result=submission.result,
            result_description=submission.result_description,
            feedback=submission.feedback,
            submitted_at=submission.submitted_at,
        )
    )
