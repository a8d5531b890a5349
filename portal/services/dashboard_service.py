"""Dashboard service: the sortable, filterable user table."""

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import URL, QueryParams

from portal.config import settings
from portal.models.user import User
from portal.schemas.user import Paginated, UserResource
from portal.utils.filters import AllowedFilter, DateFilter, QueryBuilder, parse_bool
from portal.utils.pagination import get_page, paginate


def search_users(stmt: Select, value: str) -> Select:
    needle = value.lower()
    return stmt.where(or_(User.name.ilike(f"%{needle}%"), User.email.ilike(f"%{needle}%")))


def verified_users(stmt: Select, value: str) -> Select:
    verified = parse_bool(value)
    if verified is None:
        return stmt
    return stmt.where(User.email_verified_at.isnot(None) if verified else User.email_verified_at.is_(None))


def build_users_query(query_params: QueryParams) -> Select:
    return (
        QueryBuilder(select(User), query_params)
        .default_sort("name")
        .allowed_sorts({"name": User.name, "email": User.email, "language": User.language})
        .allowed_filters(
            [
                AllowedFilter.callback("search", search_users),
                AllowedFilter.partial("_name", User.name),
                AllowedFilter.operator("name", User.name),
                AllowedFilter.partial("_email", User.email),
                AllowedFilter.operator("email", User.email),
                AllowedFilter.operator("language", User.language),
                AllowedFilter.callback("verified", verified_users),
                AllowedFilter.custom("created_at", DateFilter(), User.created_at),
            ]
        )
        .build()
        # Stable order across pages when sort values tie
        .order_by(User.id)
    )


async def get_users_page(db: AsyncSession, url: URL, query_params: QueryParams) -> Paginated:
    return await paginate(
        db,
        build_users_query(query_params),
        url,
        get_page(query_params.get("page")),
        settings.per_page,
        lambda user: UserResource.from_user(user).to_camel_dict(),
    )
