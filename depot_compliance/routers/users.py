"""
Роутер для управления пользователями
"""
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from depot_compliance.auth import get_current_user, require_super_admin, require_manager_or_admin
from depot_compliance.database import get_db
from depot_compliance.exceptions import DomainError
from depot_compliance.logger import logger
from depot_compliance.models import User, UserRole
from depot_compliance.schemas import UserCreate, UserListResponse, UserResponse, UserUpdate, MessageResponse
from depot_compliance.services.access_scope import CallerContext
from depot_compliance.services.user_service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["Пользователи"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Создание пользователя (только суперадминистратор)

    Удаленная учетная запись с тем же email восстанавливается.
    """
    try:
        service = UserService(db)
        return service.create_user(
            caller,
            email=user_data.email,
            password=user_data.password,
            role=user_data.role,
            depot_id=user_data.depot_id,
        )
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при создании пользователя: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при создании пользователя"
        )


@router.get("", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Фильтр по роли"),
    skip: int = Query(0, ge=0, description="Смещение для пагинации"),
    limit: int = Query(100, ge=1, le=500, description="Количество записей"),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    """
    Список пользователей (менеджер видит пользователей своего депо)
    """
    service = UserService(db)
    users, total = service.get_users(caller, role=role, skip=skip, limit=limit)
    return UserListResponse(total=total, items=[UserResponse.model_validate(user) for user in users])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """
    Данные текущего пользователя
    """
    return current_user


@router.get("/depot-admins", response_model=List[UserResponse])
async def list_depot_admins(
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Активные менеджеры депо (только суперадминистратор)
    """
    return UserService(db).get_depot_admins()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_manager_or_admin)
):
    """
    Получение пользователя по ID
    """
    return UserService(db).get_user(caller, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Обновление email, роли, депо или пароля пользователя
    """
    try:
        service = UserService(db)
        return service.update_user(
            caller,
            user_id,
            email=user_data.email,
            password=user_data.password,
            role=user_data.role,
            depot_id=user_data.depot_id,
        )
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при обновлении пользователя {user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при обновлении пользователя"
        )


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(require_super_admin)
):
    """
    Мягкое удаление пользователя
    """
    try:
        UserService(db).delete_user(caller, user_id)
        return MessageResponse(message="Пользователь удален")
    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.error(f"Ошибка при удалении пользователя {user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении пользователя"
        )
