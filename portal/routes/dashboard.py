from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth import get_verified_user
from portal.database import get_db
from portal.models.user import User
from portal.pages import render
from portal.services.dashboard_service import get_users_page
from portal.utils.filters import get_filters, get_sorts

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard")
async def dashboard(
    request: Request,
    user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    users = await get_users_page(db, request.url, request.query_params)

    return render(
        request,
        "dashboard/index",
        {
            "users": users.to_camel_dict(),
            "sorts": get_sorts(request.query_params),
            "filters": get_filters(request.query_params),
        },
    )
