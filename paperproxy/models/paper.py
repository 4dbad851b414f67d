"""
论文模型定义。

`Paper` 是代理对外输出的唯一实体。内部使用清晰的 Python 字段名
(例如 `abstract_text`)，序列化时通过 alias 还原前端依赖的字段名
(例如 `articletitle`，它实际承载摘要文本)。
"""

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class Database(str, Enum):
    """EUtils databases the proxy knows how to normalize."""

    PUBMED = "pubmed"
    PMC = "pmc"


NO_ABSTRACT = "No abstract available."
UNKNOWN_AUTHOR = "Unknown"


class Paper(BaseModel):
    """统一论文记录 (PubMed 与 PMC 两种 XML schema 归一化后的结果)。"""

    pmcid: str = ""
    uid: str = ""
    title: str = ""
    abstract_text: str = Field(default=NO_ABSTRACT, alias="articletitle")
    sort_first_author: str = Field(default=UNKNOWN_AUTHOR, alias="sortfirstauthor")
    authors: str = ""
    authors_array: List[str] = Field(default_factory=list, alias="authorsArray")
    source: str = ""
    pubdate: str = ""
    pdf_url: str = Field(default="", alias="pdfUrl")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_authors(cls, authors: List[str], **fields: Any) -> "Paper":
        """Build a record, deriving `authors` and `sort_first_author` from the list."""
        return cls(
            authors=", ".join(authors),
            authors_array=list(authors),
            sort_first_author=authors[0] if authors else UNKNOWN_AUTHOR,
            **fields,
        )

    def to_wire(self, include_authors_array: bool = True) -> Dict[str, Any]:
        """Serialize with the wire-level field names."""
        exclude = None if include_authors_array else {"authors_array"}
        return self.model_dump(by_alias=True, exclude=exclude)
