"""教师端接口：/api/teacher/*。鉴权在 services 中完成，路由只做参数与响应的转换。"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.common import ApiResponse
from app.schemas.teacher import (
    AddGameInstructorRequest,
    CreateGameRequest,
    CreateGroupRequest,
    CreatePlayerRequest,
    DissolveGroupRequest,
    ExerciseStatsResponse,
    GameActionRequest,
    GenerateInviteLinkRequest,
    GroupMemberRequest,
    InstructorGameMetadataResponse,
    InviteLinkResponse,
    ModifyGameRequest,
    PlayerActionRequest,
    ProcessInviteLinkRequest,
    RemoveGameInstructorRequest,
    RemoveGameStudentRequest,
    StudentExercisesResponse,
    StudentProgressResponse,
    SubmissionDataResponse,
)
from app.services import invite_service, teacher_service

router = APIRouter()


# ----- 查询 -----
@router.get("/get_instructor_games", response_model=ApiResponse[list[int]])
async def get_instructor_games(instructor_id: int = Query(...), db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await teacher_service.get_instructor_games(db, instructor_id))


@router.get("/get_instructor_game_metadata", response_model=ApiResponse[InstructorGameMetadataResponse])
async def get_instructor_game_metadata(
    instructor_id: int = Query(...),
    game_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    meta = await teacher_service.get_instructor_game_metadata(db, instructor_id, game_id)
    game = meta.game
    return ApiResponse.ok(
        InstructorGameMetadataResponse(
            title=game.title,
            description=game.description,
            active=game.active,
            public=game.public,
            total_exercises=game.total_exercises,
            start_date=game.start_date,
            end_date=game.end_date,
            is_owner=meta.is_owner,
            player_count=meta.player_count,
        )
    )


@router.get("/list_students", response_model=ApiResponse[list[int]])
async def list_students(
    instructor_id: int = Query(...),
    game_id: int = Query(...),
    group_id: int | None = Query(None),
    only_active: bool = Query(False, description="排除已停用的玩家"),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse.ok(await teacher_service.list_students(db, instructor_id, game_id, group_id, only_active))


@router.get("/get_student_progress", response_model=ApiResponse[StudentProgressResponse])
async def get_student_progress(
    instructor_id: int = Query(...),
    game_id: int = Query(...),
    player_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    p = await teacher_service.get_student_progress(db, instructor_id, game_id, player_id)
    return ApiResponse.ok(
        StudentProgressResponse(attempts=p.attempts, solved_exercises=p.solved_exercises, progress=p.progress)
    )


@router.get("/get_student_exercises", response_model=ApiResponse[StudentExercisesResponse])
async def get_student_exercises(
    instructor_id: int = Query(...),
    game_id: int = Query(...),
    player_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    ex = await teacher_service.get_student_exercises(db, instructor_id, game_id, player_id)
    return ApiResponse.ok(
        StudentExercisesResponse(attempted_exercises=ex.attempted_exercises, solved_exercises=ex.solved_exercises)
    )


@router.get("/get_student_submissions", response_model=ApiResponse[list[int]])
async def get_student_submissions(
    instructor_id: int = Query(...),
    game_id: int = Query(...),
    player_id: int = Query(...),
    success_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    ids = await teacher_service.get_student_submissions(db, instructor_id, game_id, player_id, success_only)
    return ApiResponse.ok(ids)


@router.get("/get_submission_data", response_model=ApiResponse[SubmissionDataResponse])
async def get_submission_data(
    instructor_id: int = Query(...),
    submission_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    submission = await teacher_service.get_submission_data(db, instructor_id, submission_id)
    return ApiResponse.ok(SubmissionDataResponse.model_validate(submission))


@router.get("/get_exercise_stats", response_model=ApiResponse[ExerciseStatsResponse])
async def get_exercise_stats(
    instructor_id: int = Query(...),
    game_id: int = Query(...),
    exercise_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    s = await teacher_service.get_exercise_stats(db, instructor_id, game_id, exercise_id)
    return ApiResponse.ok(
        ExerciseStatsResponse(
            attempts=s.attempts,
            successful_attempts=s.successful_attempts,
            difficulty=s.difficulty,
            solved_percentage=s.solved_percentage,
        )
    )


@router.get("/get_exercise_submissions", response_model=ApiResponse[list[int]])
async def get_exercise_submissions(
    instructor_id: int = Query(...),
    game_id: int = Query(...),
    exercise_id: int = Query(...),
    success_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    ids = await teacher_service.get_exercise_submissions(db, instructor_id, game_id, exercise_id, success_only)
    return ApiResponse.ok(ids)


@router.get("/translate_email_to_player_id", response_model=ApiResponse[int])
async def translate_email_to_player_id(email: str = Query(...), db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await teacher_service.translate_email_to_player_id(db, email))


# ----- 游戏管理 -----
@router.post("/create_game", response_model=ApiResponse[int])
async def create_game(body: CreateGameRequest, db: AsyncSession = Depends(get_db)):
    game_id = await teacher_service.create_game(
        db,
        body.instructor_id,
        title=body.title,
        course_id=body.course_id,
        programming_language=body.programming_language,
        public=body.public,
        active=body.active,
        description=body.description,
        module_lock=body.module_lock,
        exercise_lock=body.exercise_lock,
    )
    return ApiResponse.ok(game_id)


@router.post("/modify_game", response_model=ApiResponse[bool])
async def modify_game(body: ModifyGameRequest, db: AsyncSession = Depends(get_db)):
    changes = body.model_dump(exclude={"instructor_id", "game_id"})
    return ApiResponse.ok(await teacher_service.modify_game(db, body.instructor_id, body.game_id, **changes))


@router.post("/add_game_instructor", response_model=ApiResponse[bool])
async def add_game_instructor(body: AddGameInstructorRequest, db: AsyncSession = Depends(get_db)):
    ok = await teacher_service.add_game_instructor(
        db, body.requesting_instructor_id, body.game_id, body.instructor_to_add_id, body.is_owner
    )
    return ApiResponse.ok(ok)


@router.post("/remove_game_instructor", response_model=ApiResponse[bool])
async def remove_game_instructor(body: RemoveGameInstructorRequest, db: AsyncSession = Depends(get_db)):
    ok = await teacher_service.remove_game_instructor(
        db, body.requesting_instructor_id, body.game_id, body.instructor_to_remove_id
    )
    return ApiResponse.ok(ok)


@router.post("/activate_game", response_model=ApiResponse[bool])
async def activate_game(body: GameActionRequest, db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await teacher_service.activate_game(db, body.instructor_id, body.game_id))


@router.post("/stop_game", response_model=ApiResponse[bool])
async def stop_game(body: GameActionRequest, db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await teacher_service.stop_game(db, body.instructor_id, body.game_id))


@router.post("/remove_game_student", response_model=ApiResponse[bool])
async def remove_game_student(body: RemoveGameStudentRequest, db: AsyncSession = Depends(get_db)):
    ok = await teacher_service.remove_game_student(db, body.instructor_id, body.game_id, body.student_id)
    return ApiResponse.ok(ok)


# ----- 小组管理 -----
@router.post("/create_group", response_model=ApiResponse[int])
async def create_group(body: CreateGroupRequest, db: AsyncSession = Depends(get_db)):
    group_id = await teacher_service.create_group(
        db, body.instructor_id, body.display_name, body.display_avatar, body.member_list
    )
    return ApiResponse.ok(group_id)


@router.post("/dissolve_group", response_model=ApiResponse[bool])
async def dissolve_group(body: DissolveGroupRequest, db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await teacher_service.dissolve_group(db, body.instructor_id, body.group_id))


@router.post("/add_group_member", response_model=ApiResponse[bool])
async def add_group_member(body: GroupMemberRequest, db: AsyncSession = Depends(get_db)):
    ok = await teacher_service.add_group_member(db, body.instructor_id, body.group_id, body.player_id)
    return ApiResponse.ok(ok)


@router.post("/remove_group_member", response_model=ApiResponse[bool])
async def remove_group_member(body: GroupMemberRequest, db: AsyncSession = Depends(get_db)):
    ok = await teacher_service.remove_group_member(db, body.instructor_id, body.group_id, body.player_id)
    return ApiResponse.ok(ok)


# ----- 玩家管理 -----
@router.post("/create_player", response_model=ApiResponse[int])
async def create_player(body: CreatePlayerRequest, db: AsyncSession = Depends(get_db)):
    player_id = await teacher_service.create_player(
        db,
        body.instructor_id,
        email=body.email,
        display_name=body.display_name,
        display_avatar=body.display_avatar,
        game_id=body.game_id,
        group_id=body.group_id,
        language=body.language,
    )
    return ApiResponse.ok(player_id)


@router.post("/disable_player", response_model=ApiResponse[bool])
async def disable_player(body: PlayerActionRequest, db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await teacher_service.disable_player(db, body.instructor_id, body.player_id))


@router.post("/delete_player", response_model=ApiResponse[bool])
async def delete_player(body: PlayerActionRequest, db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await teacher_service.delete_player(db, body.instructor_id, body.player_id))


# ----- 邀请 -----
@router.post("/generate_invite_link", response_model=ApiResponse[InviteLinkResponse])
async def generate_invite_link(body: GenerateInviteLinkRequest, db: AsyncSession = Depends(get_db)):
    invite_uuid = await invite_service.generate(db, body.instructor_id, body.game_id, body.group_id)
    return ApiResponse.ok(InviteLinkResponse(invite_uuid=invite_uuid))


@router.post("/process_invite_link", response_model=ApiResponse[bool])
async def process_invite_link(body: ProcessInviteLinkRequest, db: AsyncSession = Depends(get_db)):
    return ApiResponse.ok(await invite_service.redeem(db, body.player_id, body.uuid))
