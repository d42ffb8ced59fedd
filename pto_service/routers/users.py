from typing import List

from fastapi import APIRouter, Depends, HTTPException

from pto_service.models.user import User
from pto_service.routers.auth_deps import get_current_user, get_user_store, require_admin
from pto_service.schemas.user import UserCreate, UserImport, UserImportResponse, UserResponse
from pto_service.services.user_store import UserStore

router = APIRouter(prefix="/users")


def _resolve_manager_id(users: UserStore, manager_slack_id):
    if not manager_slack_id:
        return None
    manager = users.get_by_external_id(manager_slack_id)
    if not manager:
        raise HTTPException(status_code=400, detail=f"Manager {manager_slack_id} not found")
    return manager.id


@router.post("", response_model=UserResponse)
def create_user(
    payload: UserCreate,
    admin: User = Depends(require_admin),
    users: UserStore = Depends(get_user_store)
):
    if users.get_by_external_id(payload.slack_id):
        raise HTTPException(status_code=409, detail=f"User {payload.slack_id} already exists")
    profile = payload.model_dump(exclude={"manager_slack_id"})
    profile["manager_id"] = _resolve_manager_id(users, payload.manager_slack_id)
    return users.create(profile)


@router.post("/import", response_model=UserImportResponse)
def import_users(
    payload: UserImport,
    admin: User = Depends(require_admin),
    users: UserStore = Depends(get_user_store)
):
    """
    Bulk import users. Existing chat ids are skipped, not updated.
    A manager can be defined earlier in the batch. Every manager reference is
    checked before anything is written, so a rejected batch creates no users.
    """
    profiles, skipped, batch_ids = [], [], set()
    for row in payload.users:
        if row.slack_id in batch_ids or users.get_by_external_id(row.slack_id):
            skipped.append(row.slack_id)
            continue
        if row.manager_slack_id and row.manager_slack_id not in batch_ids:
            _resolve_manager_id(users, row.manager_slack_id)
        batch_ids.add(row.slack_id)
        profiles.append(row.model_dump())
    created = users.create_many(profiles) if profiles else []
    return UserImportResponse(
        created=[UserResponse.model_validate(u) for u in created],
        skipped=skipped,
    )


@router.get("", response_model=List[UserResponse])
def list_users(
    current_user: User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store)
):
    return users.list_all()


@router.get("/{external_id}/team", response_model=List[UserResponse])
def list_team(
    external_id: str,
    current_user: User = Depends(get_current_user),
    users: UserStore = Depends(get_user_store)
):
    """Direct reports of a manager."""
    manager = users.get_by_external_id(external_id)
    if not manager:
        raise HTTPException(status_code=404, detail="User not found")
    return users.list_by_manager(manager.id)
