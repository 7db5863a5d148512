"""
Content sanity check for pages served by the proxy.
"""

from bs4 import BeautifulSoup


def contains_markup(body: str, max_lines: int = 5) -> bool:
    """
    Check whether an <html> opening tag appears near the top of a response body.

    Args:
        body: Response body as text
        max_lines: Number of leading lines to look at

    Returns:
        True if an html element starts within the first max_lines lines
    """
    if not body:
        return False

    head = "\n".join(body.splitlines()[:max_lines])
    soup = BeautifulSoup(head, 'html.parser')
    return soup.find('html') is not None
