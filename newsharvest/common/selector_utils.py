"""Selector utility functions.

Cascade definitions mix CSS and XPath freely. These helpers decide which
engine a selector is meant for, and translate it for Playwright waits.
"""

_XPATH_PREFIXES = ("/", "./", "(", "..")


def is_xpath(selector: str) -> bool:
    """Determine whether a selector is an XPath expression.

    CSS class selectors also start with a dot, so only ``.``, ``./`` and
    ``..`` count as relative XPath.

    Examples:
        >>> is_xpath(".")
        True
        >>> is_xpath("//div[@class='content']")
        True
        >>> is_xpath(".//a[@href]")
        True
        >>> is_xpath(".NewsCard")
        False
        >>> is_xpath("a[href*='/news/']")
        False
    """
    selector = selector.strip()
    return selector == "." or selector.startswith(_XPATH_PREFIXES)


def can_playwright_wait(selector: str) -> bool:
    """Determine if a selector can be used with Playwright's wait_for_selector().

    Playwright waits only work for selectors that target elements. XPath
    expressions returning text nodes, attributes, or using EXSLT functions
    are rejected.

    Examples:
        >>> can_playwright_wait("div.content")
        True
        >>> can_playwright_wait("//div/@href")
        False
        >>> can_playwright_wait("//div/text()")
        False
    """
    if not is_xpath(selector):
        return True

    selector = selector.strip()
    if selector.endswith("/text()"):
        return False

    parts = selector.split("/")
    if parts and parts[-1].startswith("@"):
        return False

    exslt_prefixes = ["re:", "str:", "math:", "set:", "dyn:", "exsl:"]
    return all(prefix not in selector for prefix in exslt_prefixes)


def first_selector(selector_group: str) -> str:
    """Return the first selector of a comma-separated CSS group.

    Examples:
        >>> first_selector(".article__text, .article__body, .article")
        '.article__text'
    """
    if is_xpath(selector_group):
        return selector_group.strip()
    return selector_group.split(",")[0].strip()


def playwright_selector(selector: str) -> str:
    """Prefix XPath selectors so Playwright does not guess the engine."""
    if is_xpath(selector):
        return f"xpath={selector.strip()}"
    return selector
