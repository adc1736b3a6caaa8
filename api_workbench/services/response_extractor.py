"""
Value extraction from response bodies.

JSONPath (jsonpath-ng, extended syntax) is used for JSON and GraphQL
responses, XPath (lxml) for XML. Extraction is soft: an unparseable body,
a bad expression or a path without a match all yield None.
"""

import json
import logging
from typing import Any

from jsonpath_ng.ext import parse as parse_jsonpath
from lxml import etree


logger = logging.getLogger(__name__)


def _scalar_to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2)
    return str(value)


def extract_from_json(body: str, path: str) -> str | None:
    """
    Evaluate a JSONPath expression and return the first match as text.

    Strings are returned as-is, booleans as ``true``/``false``, objects and
    arrays as indented JSON, and JSON null as None.

    Example:
        >>> extract_from_json('{"data": {"token": "abc"}}', "$.data.token")
        'abc'
    """
    if not body or not body.strip() or not path or not path.strip():
        return None
    try:
        document = json.loads(body)
        matches = parse_jsonpath(path).find(document)
    except Exception as e:  # parse errors of either the body or the expression
        logger.debug("JSONPath extraction of %r failed: %s", path, e)
        return None

    if not matches:
        logger.debug("JSONPath %r matched nothing", path)
        return None
    return _scalar_to_text(matches[0].value)


def _xpath_item_to_text(item: Any) -> str | None:
    if isinstance(item, etree._Element):
        return "".join(item.itertext())
    return str(item)


def extract_from_xml(body: str, path: str) -> str | None:
    """
    Evaluate an XPath expression and return the result as text.

    A node-set yields the string value of its first node. Numbers with no
    fractional part are rendered without a trailing ``.0``.
    """
    if not body or not body.strip() or not path or not path.strip():
        return None
    try:
        root = etree.fromstring(body.encode("utf-8"))
        result = root.xpath(path)
    except (etree.XMLSyntaxError, etree.XPathError, ValueError) as e:
        logger.debug("XPath extraction of %r failed: %s", path, e)
        return None

    if isinstance(result, list):
        if not result:
            logger.debug("XPath %r matched nothing", path)
            return None
        return _xpath_item_to_text(result[0])
    if isinstance(result, bool):
        return "true" if result else "false"
    if isinstance(result, float):
        return str(int(result)) if result.is_integer() else str(result)
    return str(result)


def extract_value(body: str | None, pattern: str | None, content_type: str | None) -> str | None:
    """
    Extract a value from a response body using a path pattern.

    The evaluator is picked by content type: anything mentioning ``json`` or
    ``graphql`` uses JSONPath, ``xml`` uses XPath. For other content types
    the body is sniffed: ``{`` or ``[`` means JSON, ``<`` means XML.

    Args:
        body: Response body text
        pattern: JSONPath or XPath expression
        content_type: Response Content-Type, may be empty

    Returns:
        The extracted value as text, or None
    """
    if not body or not body.strip() or not pattern or not pattern.strip():
        return None

    kind = (content_type or "").lower()
    if "json" in kind or "graphql" in kind:
        return extract_from_json(body, pattern)
    if "xml" in kind:
        return extract_from_xml(body, pattern)

    stripped = body.lstrip()
    if stripped.startswith(("{", "[")):
        return extract_from_json(body, pattern)
    if stripped.startswith("<"):
        return extract_from_xml(body, pattern)
    return None
