import logging
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from elevation_bonus.authentication.bonus_authentication import BonusAuthentication
from elevation_bonus.domain.errors import BonusError
from elevation_bonus.models.dc_models import (
    ActivationRequestModel,
    ActivationResultModel,
    ActiveBonusesModel,
    BonusStateModel,
    RankingRequestModel,
    ResetResultModel,
    ResolveUsageModel,
    StockResultModel,
    StockUpdateModel,
)
from elevation_bonus.models.schema_models import (
    AdjustedRankingSchema,
    RankingEntrySchema,
    UsageRecordSchema,
)
from elevation_bonus.services.bonus_service import BonusService

bonus_router = APIRouter()

ERROR_STATUS = {
    "NotFound": status.HTTP_404_NOT_FOUND,
    "AlreadyUsedThisRound": status.HTTP_409_CONFLICT,
    "DuplicateUsage": status.HTTP_409_CONFLICT,
    "Busy": status.HTTP_409_CONFLICT,
    "StorageUnavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_bonus_service(request: Request) -> BonusService:
    return request.app.state.bonus_service


async def bonus_error_handler(request: Request, exc: BonusError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    logging.info(f"{request.method} {request.url.path} rejected: {exc.kind} ({exc.message})")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def register_bonus_routes(app: FastAPI) -> None:
    app.include_router(bonus_router)
    app.add_exception_handler(BonusError, bonus_error_handler)


class AdminBonusAPI:
    @staticmethod
    @bonus_router.get(
        "/admin/bonus/{league_id}",
        response_model=BonusStateModel,
        dependencies=[Depends(BonusAuthentication.check_admin_password)],
    )
    async def list_bonus_state(league_id: str, service: BonusService = Depends(get_bonus_service)):
        return await service.list_bonus_state(league_id)

    @staticmethod
    @bonus_router.put(
        "/admin/bonus/stock/{participant_id}",
        response_model=StockResultModel,
        dependencies=[Depends(BonusAuthentication.check_admin_password)],
    )
    async def set_stock(
        participant_id: str,
        stock_update: StockUpdateModel,
        service: BonusService = Depends(get_bonus_service),
    ):
        bonus_stock = await service.set_stock(participant_id, stock_update.bonus_stock)
        return StockResultModel(participant_id=participant_id, bonus_stock=bonus_stock)

    @staticmethod
    @bonus_router.post(
        "/admin/bonus/reset/{league_id}",
        response_model=ResetResultModel,
        dependencies=[Depends(BonusAuthentication.check_admin_password)],
    )
    async def reset_stock(league_id: str, service: BonusService = Depends(get_bonus_service)):
        count = await service.reset_stock(league_id)
        return ResetResultModel(league_id=league_id, count=count)

    @staticmethod
    @bonus_router.post(
        "/admin/bonus/resolve/{usage_id}",
        response_model=UsageRecordSchema,
        dependencies=[Depends(BonusAuthentication.check_admin_password)],
    )
    async def resolve_usage(
        usage_id: UUID,
        resolution: ResolveUsageModel,
        service: BonusService = Depends(get_bonus_service),
    ):
        return await service.resolve_usage(usage_id, resolution.result)

    @staticmethod
    @bonus_router.post(
        "/admin/bonus/cancel/{usage_id}",
        response_model=UsageRecordSchema,
        dependencies=[Depends(BonusAuthentication.check_admin_password)],
    )
    async def cancel_usage(usage_id: UUID, service: BonusService = Depends(get_bonus_service)):
        return await service.cancel_usage(usage_id)


class BonusAPI:
    @staticmethod
    @bonus_router.post("/bonus/activate", response_model=ActivationResultModel)
    async def activate_bonus(
        request: ActivationRequestModel,
        participant_id: str = Depends(BonusAuthentication.read_participant_id),
        service: BonusService = Depends(get_bonus_service),
    ):
        return await service.activate_bonus(participant_id, request)

    @staticmethod
    @bonus_router.get("/bonus/active/{round_number}", response_model=ActiveBonusesModel)
    async def list_active_for_round(round_number: int, service: BonusService = Depends(get_bonus_service)):
        return await service.list_active_for_round(round_number)

    @staticmethod
    @bonus_router.post("/bonus/ranking/{round_number}", response_model=AdjustedRankingSchema)
    async def compute_adjusted_ranking(
        round_number: int,
        ranking_request: RankingRequestModel,
        service: BonusService = Depends(get_bonus_service),
    ):
        ranking = [
            RankingEntrySchema(participant_id=entry.participant_id, total=entry.total)
            for entry in ranking_request.ranking
        ]
        return await service.compute_adjusted_ranking(ranking, round_number)
