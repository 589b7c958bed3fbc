from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Type, TypeVar, Union, get_args, get_origin

from lxml import etree  # type: ignore
from pydantic import BaseModel

from .schema import RunReport

if TYPE_CHECKING:
    from .source import ReportSource

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# -----------------------------
# Helpers
# -----------------------------

def _txt(node: etree._Element, path: str) -> str:
    found = node.find(path)
    return found.text.strip() if found is not None and found.text else ""

def _new_parser() -> etree.XMLParser:
    # nvidia-smi ships a DOCTYPE pointing at a local DTD; never follow it
    return etree.XMLParser(
        recover=True,
        resolve_entities=False,
        load_dtd=False,
        no_network=True,
        remove_comments=True,
    )

def _build(model: Type[M], node: Optional[etree._Element]) -> M:
    """Fill `model` from `node`, one field per declared alias.

    Absent tags leave the field at its default; tags the model does not
    declare are never looked at.
    """
    if node is None:
        return model()

    values = {}
    for name, field in model.model_fields.items():
        tag = field.alias or name
        annotation = field.annotation
        if tag.startswith("@"):
            values[name] = (node.get(tag[1:]) or "").strip()
        elif get_origin(annotation) is tuple:
            item_model = get_args(annotation)[0]
            values[name] = tuple(_build(item_model, child) for child in node.findall(tag))
        elif isinstance(annotation, type) and issubclass(annotation, BaseModel):
            values[name] = _build(annotation, node.find(tag))
        else:
            values[name] = _txt(node, tag)
    return model(**values)

# -----------------------------
# Public API
# -----------------------------

def parse_report(xml: Union[bytes, str]) -> RunReport:
    """Parse `nvidia-smi -q -x` output into a RunReport.

    Never raises on bad input.  Broken XML is recovered as far as lxml can
    manage and whatever was read before the damage is kept; input with no
    usable root element gives an empty report.
    """
    if isinstance(xml, str):
        xml = xml.encode("utf-8")
    if not xml.strip():
        log.warning("nvidia-smi report is empty")
        return RunReport()

    parser = _new_parser()
    try:
        root = etree.fromstring(xml, parser)
    except etree.XMLSyntaxError as exc:
        log.warning("nvidia-smi report could not be parsed: %s", exc)
        return RunReport()
    if root is None:
        log.warning("nvidia-smi report has no root element")
        return RunReport()
    if len(parser.error_log):
        log.warning("nvidia-smi report recovered from %d XML error(s)", len(parser.error_log))

    return _build(RunReport, root)

def collect_once(source: "ReportSource") -> RunReport:
    """Convenience: read one report from `source` and parse it.

    Source failures propagate as ReportSourceError.
    """
    return parse_report(source.read())
