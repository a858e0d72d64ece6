from typing import List, Optional
from pydantic import BaseModel, HttpUrl


# Models
class Submitter(BaseModel):
    name: str = ""
    email: str = ""
    picture: str = ""
    bot: bool = False


class Post(BaseModel):
    title: str
    url: str
    domain: str = ""
    submitted: str  # ISO-8601 timestamp
    submitter: Submitter = Submitter()
    author: str = ""
    pageviews: Optional[int] = None


class PostSubmission(BaseModel):
    title: str
    url: HttpUrl
    submitted: Optional[str] = None
    submitter: Submitter = Submitter()
    author: str = ""


class CacheClearResponse(BaseModel):
    cleared: int
    message: str


class RebuildResponse(BaseModel):
    cleared: int
    warmed: List[str]
