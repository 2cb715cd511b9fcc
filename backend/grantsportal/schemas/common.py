from pydantic import BaseModel


class MessageResponse(BaseModel):
    message: str


class PageMeta(BaseModel):
    """Pagination fields shared by every listing; subclasses add the resource-named item list"""
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
