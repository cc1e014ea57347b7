from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class ScanRequest(CamelModel):
    url: Optional[str] = None
    urls: List[str] = Field(default_factory=list)
    session_id: Optional[str] = None

    def target_urls(self) -> List[str]:
        """`urls` when given, otherwise the single `url`."""
        if self.urls:
            return list(self.urls)
        return [self.url] if self.url else []

class LinkCheck(CamelModel):
    url: str
    status_code: Optional[int] = None
    is_working: bool = False
    is_redirect: bool = False
    is_broken: bool = False
    status_message: str
    redirect_location: Optional[str] = None
    response_time: int = 0
    checked_with: Optional[str] = None

    @model_validator(mode="after")
    def one_bucket(self):
        if [self.is_working, self.is_redirect, self.is_broken].count(True) != 1:
            raise ValueError("a link is exactly one of working, redirect or broken")
        if self.redirect_location is not None and not self.is_redirect:
            raise ValueError("redirect_location is only set for redirects")
        return self

class LinkSummary(CamelModel):
    working: int = 0
    broken: int = 0
    redirects: int = 0

class ScanResult(CamelModel):
    url: str
    page_status: int = 0
    total_links: int = 0
    links_checked: int = 0
    truncated: bool = False
    links: List[LinkCheck] = Field(default_factory=list)
    summary: LinkSummary = Field(default_factory=LinkSummary)
    timestamp: datetime
    error: Optional[str] = None

class BatchSummary(CamelModel):
    total: int = 0
    total_links: int = 0
    total_working: int = 0
    total_broken: int = 0
    total_redirects: int = 0

class ScanResponse(CamelModel):
    success: bool = True
    results: List[ScanResult]
    count: int
    summary: BatchSummary
    message: str

class QuotaStatus(CamelModel):
    plan: str
    batch_allowed: bool
    max_urls: int
    link_cap: int
    daily_limit: int
    daily_used: int
    daily_remaining: int
