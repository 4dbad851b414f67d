"""
记录归一化模块 (Record Normalizer)

功能 (Function):
把 EUtils `efetch.fcgi` 返回的 XML 文档解析为统一的 `Paper` 记录列表。
支持两种 schema：
- PubMed (`PubmedArticleSet/PubmedArticle`)
- PMC JATS (`pmc-articleset/article`)

每个顶层文章元素恰好产出一条记录；没有文章元素时返回空列表而不是报错。
元素查找遵循"文档顺序中第一个匹配的后代元素"语义，文本取全部后代文本。

批量检索、单篇检索以及 PMC 补全 (enrichment) 三条路径共用本模块的 `normalize`，
字段抽取规则只在这里定义一次。
"""

import logging
import re
from typing import Callable, Dict, List, Optional, Union

from lxml import etree

from paperproxy.models.paper import NO_ABSTRACT, UNKNOWN_AUTHOR, Database, Paper
from paperproxy.utils.ids import sanitize_pmcid

logger = logging.getLogger(__name__)

PMC_PDF_URL_TEMPLATE = "https://www.ncbi.nlm.nih.gov/pmc/articles/PMC{pmcid}/pdf/"

XLINK_HREF = "{http://www.w3.org/1999/xlink}href"

_MONTHS = {
    "jan": "01",
    "feb": "02",
    "mar": "03",
    "apr": "04",
    "may": "05",
    "jun": "06",
    "jul": "07",
    "aug": "08",
    "sep": "09",
    "oct": "10",
    "nov": "11",
    "dec": "12",
}

_MONTH_NAME_RE = re.compile(r"^[A-Za-z]{3,}\.?$")

XmlInput = Union[str, bytes, None]


# --- 底层 XML 工具函数 ---


def parse_document(xml: XmlInput) -> Optional[etree._Element]:
    """
    Parse raw XML into an element tree root.

    Returns None for empty or unrecoverable input. Element namespaces are
    stripped so lookups can use bare JATS/PubMed tag names; attribute
    namespaces (``xlink:href``) are kept.
    """
    if xml is None:
        return None
    data = xml.encode("utf-8") if isinstance(xml, str) else xml
    if not data.strip():
        return None

    parser = etree.XMLParser(
        recover=True,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
    )
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as e:
        logger.warning(f"Unparseable XML document from EUtils: {e}")
        return None
    if root is None:
        return None

    for el in root.iter(etree.Element):
        if isinstance(el.tag, str) and el.tag.startswith("{"):
            el.tag = etree.QName(el).localname
    return root


def _text(el: Optional[etree._Element]) -> str:
    if el is None:
        return ""
    return "".join(el.itertext())


def _first(el: etree._Element, path: str) -> Optional[etree._Element]:
    found = el.xpath(path)
    return found[0] if found else None


def _first_text(el: etree._Element, path: str) -> str:
    return _text(_first(el, path))


def _href(el: etree._Element) -> str:
    return el.get(XLINK_HREF) or ""


def _pad(value: str) -> str:
    return value.rjust(2, "0")


def _month_number(month: str) -> str:
    """`Mar` / `March` / `3` -> two-digit month."""
    if _MONTH_NAME_RE.match(month):
        number = _MONTHS.get(month[:3].lower())
        if number:
            return number
    return _pad(month)


def compose_pubdate(year: str, month: str, day: str) -> str:
    """
    Build ``YYYY-MM-DD`` / ``YYYY-MM`` / ``YYYY`` from the parts that exist.

    >>> compose_pubdate("2021", "3", "7")
    '2021-03-07'
    >>> compose_pubdate("2021", "Mar", "")
    '2021-03'
    """
    if year and month and day:
        return f"{year}-{_month_number(month)}-{_pad(day)}"
    if year and month:
        return f"{year}-{_month_number(month)}"
    if year:
        return year
    return ""


def _date_parts(date_el: etree._Element, year_tag: str, month_tag: str, day_tag: str):
    return (
        _first_text(date_el, f".//{year_tag}").strip(),
        _first_text(date_el, f".//{month_tag}").strip(),
        _first_text(date_el, f".//{day_tag}").strip(),
    )


def pmc_pdf_url(pmcid: str) -> str:
    return PMC_PDF_URL_TEMPLATE.format(pmcid=pmcid)


# --- PubMed schema ---


def _pubmed_abstract(article: etree._Element) -> str:
    segments = article.xpath(".//Abstract/AbstractText")
    if not segments:
        return NO_ABSTRACT
    parts = []
    for segment in segments:
        label = segment.get("Label")
        text = _text(segment).strip()
        parts.append(f"{label}: {text}" if label else text)
    return " ".join(parts)


def _pubmed_authors(article: etree._Element) -> List[str]:
    author_list = _first(article, ".//AuthorList")
    if author_list is None:
        return []
    names = []
    for author in author_list.xpath(".//Author"):
        fore = _first_text(author, ".//ForeName")
        last = _first_text(author, ".//LastName")
        full = f"{fore} {last}".strip()
        name = full or _first_text(author, ".//CollectiveName") or UNKNOWN_AUTHOR
        if name and name != UNKNOWN_AUTHOR:
            names.append(name)
    return names


def _pubmed_pubdate(article: etree._Element) -> str:
    pub_date = _first(article, ".//PubDate")
    if pub_date is None:
        return ""
    year, month, day = _date_parts(pub_date, "Year", "Month", "Day")
    pubdate = compose_pubdate(year, month, day)
    if not pubdate:
        pubdate = _first_text(article, ".//PubStatus/Year").strip()
    return pubdate


def _pubmed_pmcid(article: etree._Element) -> str:
    id_list = _first(article, ".//ArticleIdList")
    if id_list is None:
        return ""
    for article_id in id_list.xpath(".//ArticleId"):
        if article_id.get("IdType") == "pmc":
            return _text(article_id)
    return ""


def parse_pubmed_article(article: etree._Element) -> Paper:
    """Normalize one ``<PubmedArticle>`` element."""
    raw_pmcid = _pubmed_pmcid(article)
    pmcid = sanitize_pmcid(raw_pmcid)
    logger.debug(f"PubMed article: raw PMC ID '{raw_pmcid}', sanitized '{pmcid}'")

    journal = _first_text(article, ".//MedlineTA") or _first_text(
        article, ".//Journal/Title"
    )
    return Paper.from_authors(
        _pubmed_authors(article),
        pmcid=pmcid,
        uid=_first_text(article, ".//PMID"),
        title=_first_text(article, ".//ArticleTitle").strip(),
        abstract_text=_pubmed_abstract(article).strip(),
        source=journal.strip(),
        pubdate=_pubmed_pubdate(article),
        pdf_url=pmc_pdf_url(pmcid) if pmcid else "",
    )


# --- PMC (JATS) schema ---


def _pmc_abstract(article: etree._Element) -> Optional[str]:
    """Abstract paragraphs joined by a space, or None when there is no markup."""
    paragraphs = article.xpath(".//abstract//p")
    if not paragraphs:
        return None
    return " ".join(_text(p) for p in paragraphs)


def _pmc_authors(article: etree._Element) -> List[str]:
    names = []
    for name_el in article.xpath(".//contrib[@contrib-type='author']//name"):
        given = _first_text(name_el, ".//given-names")
        surname = _first_text(name_el, ".//surname")
        full = f"{given} {surname}".strip()
        name = full or _text(name_el).strip()
        if name:
            names.append(name)
    return names


def _pmc_pubdate(article: etree._Element) -> str:
    pub_date = _first(article, ".//pub-date")
    if pub_date is None:
        return ""
    return compose_pubdate(*_date_parts(pub_date, "year", "month", "day"))


def _pmc_pdf_url(article: etree._Element, pmcid: str) -> str:
    # 1) 第一个 self-uri 声明为 PDF；相对地址改写为当前文章自己的 PMC 模板地址
    self_uri = _first(article, ".//self-uri")
    if self_uri is not None:
        content_type = self_uri.get("content-type") or ""
        href = _href(self_uri)
        if "pdf" in content_type.lower() and href:
            return href if href.startswith("http") else pmc_pdf_url(pmcid)

    # 2) 第一个以 .pdf 结尾的外部链接
    for link in article.xpath(".//ext-link"):
        href = _href(link)
        if href and href.lower().endswith(".pdf"):
            return href

    # 3) 兜底：PMC 模板地址
    return pmc_pdf_url(pmcid)


def parse_pmc_article(article: etree._Element) -> Paper:
    """Normalize one JATS ``<article>`` element from the PMC database."""
    raw_pmcid = _first_text(article, ".//article-id[@pub-id-type='pmc']")
    pmcid = sanitize_pmcid(raw_pmcid)
    logger.debug(f"PMC article: raw PMC ID '{raw_pmcid}', sanitized '{pmcid}'")

    abstract = _pmc_abstract(article)
    return Paper.from_authors(
        _pmc_authors(article),
        pmcid=pmcid,
        uid=_first_text(article, ".//article-id[@pub-id-type='pmid']"),
        title=_first_text(article, ".//article-title").strip(),
        abstract_text=(abstract if abstract is not None else NO_ABSTRACT).strip(),
        source=_first_text(article, ".//journal-title").strip(),
        pubdate=_pmc_pubdate(article),
        pdf_url=_pmc_pdf_url(article, pmcid),
    )


# --- 公共入口 ---

_ARTICLE_XPATH: Dict[Database, str] = {
    Database.PUBMED: "//PubmedArticle",
    Database.PMC: "//article[not(ancestor::article)]",
}

_ARTICLE_PARSERS: Dict[Database, Callable[[etree._Element], Paper]] = {
    Database.PUBMED: parse_pubmed_article,
    Database.PMC: parse_pmc_article,
}


def iter_articles(root: Optional[etree._Element], schema: Database) -> List[etree._Element]:
    if root is None:
        return []
    return root.xpath(_ARTICLE_XPATH[Database(schema)])


def normalize(xml: XmlInput, schema: Union[Database, str]) -> List[Paper]:
    """
    Normalize a raw EUtils XML document into `Paper` records.

    Args:
        xml: the efetch response body (text or bytes).
        schema: which source schema the document follows (`pubmed` or `pmc`).

    Returns:
        One `Paper` per top-level article element, in document order.
    """
    schema = Database(schema)
    root = parse_document(xml)
    articles = iter_articles(root, schema)
    parser = _ARTICLE_PARSERS[schema]
    papers = [parser(article) for article in articles]
    logger.debug(f"Normalized {len(papers)} {schema.value} article(s)")
    return papers


def extract_error_message(xml: XmlInput) -> Optional[str]:
    """Text of the first ``<ERROR>`` element EUtils embedded in a document."""
    root = parse_document(xml)
    if root is None:
        return None
    error_el = _first(root, "//ERROR")
    if error_el is None:
        return None
    return _text(error_el)
