"""Session payload parser - validate raw capture records into typed interactions.

The capture layer emits loosely-typed JSON (camelCase from the browser
extension, snake_case from replays). This parser is the single ingestion
boundary: everything downstream works on the closed set of interaction
variants and never probes for optional fields.
"""

import json
import re
from datetime import datetime
from typing import Any, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from codesight.selectors.models import LocatorKind
from codesight.selectors.resolver import UTILITY_CLASS_PATTERN, infer_locator_kind

from .kinds import RAW_KIND_ALIASES
from .models import Direction, InteractionRecord, Session

logger = structlog.get_logger()

_INTERACTION_ADAPTER: TypeAdapter = TypeAdapter(InteractionRecord)

_DIRECTION_ALIASES = {
    "up": Direction.ABOVE,
    "top": Direction.ABOVE,
    "above": Direction.ABOVE,
    "down": Direction.BELOW,
    "bottom": Direction.BELOW,
    "below": Direction.BELOW,
    "left": Direction.LEFT,
    "right": Direction.RIGHT,
    "inside": Direction.INSIDE,
    "within": Direction.INSIDE,
}

_INTERACTIVE_TAGS = {"a", "button", "input", "select", "textarea", "option", "label", "summary"}


def _first(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among keys."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


class SessionParser:
    """Parser for raw session payloads.

    Example:
        parser = SessionParser()
        session = parser.parse(payload_json, session_id="sess-42")
        for interaction in session.interactions:
            ...
    """

    def __init__(self, derive_selectors_from_attributes: bool = True):
        """Initialize parser.

        Args:
            derive_selectors_from_attributes: Build unscored locator
                candidates from element attributes when a record has none
        """
        self.derive_selectors_from_attributes = derive_selectors_from_attributes
        self.log = logger.bind(component="session_parser")

    def parse(self, payload: dict | list | str, session_id: Optional[str] = None) -> Session:
        """Parse a raw payload into a validated Session.

        Args:
            payload: Dict with an ``interactions`` key, a bare list of
                records, or the JSON string of either
            session_id: Overrides the identifier found in the payload

        Returns:
            Session with interactions in ascending timestamp order
        """
        if isinstance(payload, str):
            payload = json.loads(payload)

        if isinstance(payload, list):
            payload = {"interactions": payload}

        raw_records = _first(payload, "interactions", "events", default=[]) or []
        resolved_id = session_id or str(_first(payload, "session_id", "sessionId", "id", default="session"))

        self.log.info("Parsing session payload", session_id=resolved_id, record_count=len(raw_records))

        interactions = []
        skipped = 0
        dropped = 0
        for position, raw in enumerate(raw_records):
            normalized = self._normalize_record(raw)
            if normalized is None:
                skipped += 1
                continue
            try:
                interactions.append(_INTERACTION_ADAPTER.validate_python(normalized))
            except ValidationError as e:
                dropped += 1
                self.log.warning(
                    "Dropping malformed interaction record",
                    session_id=resolved_id,
                    position=position,
                    error_count=e.error_count(),
                )

        # Stable: records sharing a timestamp keep capture order
        interactions.sort(key=lambda interaction: interaction.timestamp)

        metadata = dict(payload.get("metadata") or {})
        metadata.update({
            "raw_record_count": len(raw_records),
            "skipped_records": skipped,
            "dropped_records": dropped,
        })

        session = Session(
            session_id=resolved_id,
            started_at=self._parse_datetime(_first(payload, "started_at", "startTime", "start_time")),
            ended_at=self._parse_datetime(_first(payload, "ended_at", "endTime", "end_time")),
            interactions=interactions,
            metadata=metadata,
        )

        self.log.info(
            "Parsing complete",
            session_id=resolved_id,
            interaction_count=session.interaction_count,
            skipped=skipped,
            dropped=dropped,
        )
        return session

    def _normalize_record(self, raw: Any) -> Optional[dict]:
        """Map one raw record onto the variant schema, or None to skip it."""
        if not isinstance(raw, dict):
            return None

        interaction = raw.get("interaction") if isinstance(raw.get("interaction"), dict) else {}
        raw_kind = str(_first(raw, "kind", "type", default=_first(interaction, "type", default=""))).strip().lower()
        kind = RAW_KIND_ALIASES.get(raw_kind)
        if kind is None:
            self.log.debug("Skipping unsupported interaction kind", raw_kind=raw_kind)
            return None

        context = raw.get("context") if isinstance(raw.get("context"), dict) else {}
        element_raw = raw.get("element") if isinstance(raw.get("element"), dict) else {}

        element = {
            "tag": _first(element_raw, "tag", "tagName", default=_first(raw, "elementTag", default="")),
            "text": _first(element_raw, "text", "innerText", default=_first(raw, "elementText", default="")),
            "attributes": _first(element_raw, "attributes", default={}),
            "bounding_box": self._parse_bounding_box(
                _first(element_raw, "bounding_box", "boundingBox", default=_first(raw.get("visual") or {}, "boundingBox"))
            ),
            "ancestors": self._parse_summaries(_first(element_raw, "ancestors", default=_first(context, "ancestors", default=[]))),
            "siblings": self._parse_summaries(_first(element_raw, "siblings", default=[])),
        }

        nearby_raw = _first(raw, "nearby_elements", "nearbyElements", default=_first(element_raw, "nearbyElements", "nearby_elements", default=[]))

        record = {
            "kind": kind.value,
            "timestamp": self._parse_timestamp(_first(raw, "timestamp", "time", default=0)),
            "page_url": _first(raw, "page_url", "pageUrl", "url", default=_first(context, "pageUrl", "url", default="")),
            "element": element,
            "selectors": self._parse_selectors(raw.get("selectors"), element),
            "nearby_elements": [self._parse_nearby(n) for n in nearby_raw or [] if isinstance(n, dict)],
        }

        title = _first(raw, "page_title", "pageTitle", default=_first(context, "pageTitle", "title"))
        state = _first(raw, "state", default=None)
        if title or state:
            record["page"] = {"title": title or "", "state": state if isinstance(state, dict) else {}}

        if kind.value == "input":
            value = _first(raw, "value", default=_first(interaction, "value"))
            record["value"] = None if value is None else str(value)
        elif kind.value == "navigation":
            from_url = _first(raw, "from_url", "fromUrl", "referrer")
            record["from_url"] = None if from_url is None else str(from_url)

        return record

    @staticmethod
    def _parse_timestamp(value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            if re.fullmatch(r"\d+", stripped):
                return int(stripped)
            try:
                return int(datetime.fromisoformat(stripped.replace("Z", "+00:00")).timestamp() * 1000)
            except ValueError:
                # Left as-is so validation rejects the record
                return value
        if isinstance(value, float):
            return int(value)
        return value

    @staticmethod
    def _parse_datetime(value: Any) -> Optional[datetime]:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000)
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None

    @staticmethod
    def _parse_bounding_box(value: Any) -> Optional[dict]:
        if not isinstance(value, dict):
            return None
        return {key: value.get(key, 0) or 0 for key in ("x", "y", "width", "height")}

    @staticmethod
    def _parse_summaries(values: Any) -> list[dict]:
        summaries = []
        for value in values or []:
            if isinstance(value, dict):
                summaries.append({
                    "tag": str(_first(value, "tag", "tagName", default="")).lower(),
                    "text": str(_first(value, "text", default="")),
                    "attributes": {
                        str(k): str(v) for k, v in (value.get("attributes") or {}).items() if v is not None
                    },
                })
            elif isinstance(value, str):
                summaries.append({"tag": value.lower()})
        return summaries

    @staticmethod
    def _parse_nearby(value: dict) -> dict:
        tag = str(_first(value, "tag", "tagName", "elementType", default="")).lower()
        direction = _DIRECTION_ALIASES.get(str(value.get("direction", "")).lower(), Direction.NEAR)
        interactive = _first(value, "interactive", "isInteractive", default=tag in _INTERACTIVE_TAGS)
        try:
            distance = max(0.0, float(value.get("distance", 0) or 0))
        except (TypeError, ValueError):
            distance = 0.0
        return {
            "text": str(value.get("text") or ""),
            "tag": tag,
            "direction": direction.value,
            "distance": distance,
            "interactive": bool(interactive),
        }

    def _parse_selectors(self, raw: Any, element: dict) -> list[dict]:
        """Collect selector candidates from either capture shape."""
        candidates: list[dict] = []

        if isinstance(raw, list):
            for entry in raw:
                if isinstance(entry, str):
                    candidates.append(self._candidate(entry, None, None))
                elif isinstance(entry, dict) and entry.get("locator"):
                    candidates.append(self._candidate(entry["locator"], entry.get("kind"), entry.get("reliability")))

        elif isinstance(raw, dict):
            reliability = raw.get("reliability") if isinstance(raw.get("reliability"), dict) else {}
            locators = [raw.get("xpath"), raw.get("cssPath"), raw.get("css"), raw.get("primary")]
            locators.extend(raw.get("alternatives") or [])
            for locator in locators:
                if isinstance(locator, str) and locator.strip():
                    candidates.append(self._candidate(locator, None, reliability.get(locator)))

        if not candidates and self.derive_selectors_from_attributes:
            candidates = self._derive_from_attributes(element.get("tag") or "", element.get("attributes") or {})

        return candidates

    @staticmethod
    def _candidate(locator: str, kind: Any, reliability: Any) -> dict:
        try:
            kind_value = LocatorKind(kind).value
        except ValueError:
            kind_value = infer_locator_kind(locator).value

        try:
            score = None if reliability is None else min(1.0, max(0.0, float(reliability)))
        except (TypeError, ValueError):
            score = None

        return {"locator": locator, "kind": kind_value, "reliability": score}

    @staticmethod
    def _derive_from_attributes(tag: str, attributes: dict) -> list[dict]:
        """Build unscored candidates from element attributes, most stable first."""
        tag = str(tag or "").lower()
        derived: list[tuple[str, LocatorKind]] = []

        if attributes.get("id"):
            derived.append((f"#{attributes['id']}", LocatorKind.ID))

        for attr in ("data-testid", "data-test"):
            if attributes.get(attr):
                derived.append((f'[{attr}="{attributes[attr]}"]', LocatorKind.TEST_ATTRIBUTE))

        if attributes.get("aria-label"):
            derived.append((f'{tag}[aria-label="{attributes["aria-label"]}"]', LocatorKind.ACCESSIBILITY))

        if attributes.get("name"):
            derived.append((f'{tag}[name="{attributes["name"]}"]', LocatorKind.NAME))

        classes = str(attributes.get("class") or "").split()
        significant = [c for c in classes if not UTILITY_CLASS_PATTERN.match(c)]
        if significant:
            derived.append((f".{significant[0]}", LocatorKind.STABLE_CLASS))

        return [{"locator": locator, "kind": kind.value, "reliability": None} for locator, kind in derived]


def parse_session(
    payload: dict | list | str,
    session_id: Optional[str] = None,
    **parser_options,
) -> Session:
    """Convenience function to parse a session payload.

    Args:
        payload: Raw session payload
        session_id: Identifier override
        **parser_options: Options for SessionParser

    Returns:
        Validated Session
    """
    parser = SessionParser(**parser_options)
    return parser.parse(payload, session_id=session_id)
