from pydantic import BaseModel


class ActivityItem(BaseModel):
    id: str
    type: str  # consultation, assessment, customization, rental, schedule_<kind>
    title: str
    date: str  # YYYY-MM-DD
    client_id: str | None = None
    client_name: str | None = None
    metadata: dict = {}
    created_at: str | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class ActivityListResponse(BaseModel):
    data: list[ActivityItem]
    pagination: Pagination
    partial: bool = False
    failedSources: list[str] = []
    truncatedSources: list[str] = []  # sources that hit the row cap


class ActivitySearchResponse(ActivityListResponse):
    grouped: dict[str, int]
