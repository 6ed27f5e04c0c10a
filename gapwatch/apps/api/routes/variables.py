from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from gapwatch.apps.api.deps import get_store
from gapwatch.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from gapwatch.domain.records import Variable
from gapwatch.persistence.store import Store
from gapwatch.services import variables as variables_service


router = APIRouter(prefix="/config", tags=["config"], responses=DEFAULT_ERROR_RESPONSES)


class VariableResponse(BaseModel):
    id: int
    name: str
    value: str
    range: list[str]
    hazardous: bool


class VariableUpdateRequest(BaseModel):
    value: str


def _to_response(variable: Variable) -> VariableResponse:
    return VariableResponse(
        id=variable.id,
        name=variable.name,
        value=variable.value,
        range=list(variable.allowed_range),
        hazardous=variable.hazardous,
    )


@router.get("/", response_model=list[VariableResponse])
async def list_variables(store: Store = Depends(get_store)) -> list[VariableResponse]:
    return [_to_response(variable) for variable in await variables_service.list_variables(store)]


@router.put("/{variable_id}", response_model=VariableResponse)
async def update_variable(
    variable_id: int,
    payload: VariableUpdateRequest,
    store: Store = Depends(get_store),
) -> VariableResponse:
    return _to_response(await variables_service.update_variable(store, variable_id, payload.value))
