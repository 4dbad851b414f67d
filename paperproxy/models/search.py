"""
搜索与检索相关 Pydantic 模型 (Search & Retrieval Models)

功能 (Function):
1.  **API 响应序列化**: `SearchResponse` (分页 ID 列表)、`PapersResponse` (批量论文详情)、
    `ErrorResponse` (所有错误响应的统一形状)。
2.  **API 请求体验证**: `PapersRequest` 接收 `POST /papers` 的请求体。
3.  **上游响应解析**: `EsearchResult` 解析 `esearch.fcgi` 返回的 `esearchresult` 块。

交互 (Interaction):
- 被导入 (Imported by):
    - `paperproxy.api.v1.endpoints.*`: 作为 `response_model` 与请求体模型。
    - `paperproxy.services.search_service`: 构建 `SearchResponse`，读取 `EsearchResult`。
    - `paperproxy.services.paper_service`: 构建 `PapersResponse`。
    - `paperproxy.repositories.eutils_repo`: 把 JSON 解析为 `EsearchResult`。
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from paperproxy.models.paper import Paper


class SearchResponse(BaseModel):
    """`GET /search` 的响应：一页 ID 以及命中总数。"""

    ids: List[str] = Field(default_factory=list)
    total: int = 0
    retstart: int = 0
    retmax: int = 10


class PapersRequest(BaseModel):
    """
    `POST /papers` 的请求体。

    `ids` 保持宽松类型 (字符串或数字的列表)，空值/缺失/非列表由服务层按业务规则拒绝，
    以便返回统一的 400 错误信息。`retmax` 为兼容旧前端而接受，但不使用。
    """

    ids: Optional[Any] = None
    db: Optional[str] = None
    retmax: Optional[Any] = None


class PapersResponse(BaseModel):
    papers: List[Paper] = Field(default_factory=list)
    total: int = 0


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None


class EsearchResult(BaseModel):
    """`esearchresult` 块；字段名与 EUtils JSON 保持一致。"""

    count: int = 0
    webenv: Optional[str] = None
    querykey: Optional[str] = None
    idlist: List[str] = Field(default_factory=list)
    error: Optional[str] = Field(default=None, alias="ERROR")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("count", mode="before")
    @classmethod
    def parse_count(cls, v: Any) -> int:
        # 无法解析的 count 视为 0
        try:
            return int(v)
        except (TypeError, ValueError):
            return 0

    @field_validator("webenv", "querykey", "error", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("idlist", mode="before")
    @classmethod
    def parse_idlist(cls, v: Any) -> List[str]:
        if not v:
            return []
        return [str(item) for item in v]
