from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
import logging

from lxml import etree # type: ignore

from radioinfo.exceptions import ParseError
from radioinfo.models import Program
from radioinfo.utils.timezone import is_within_window, utc_to_local

logger = logging.getLogger(__name__)

EPISODE_TAG = "scheduledepisode"

FIELD_TAGS = {
    "title": "name",
    "description": "description",
    "starttimeutc": "start_time",
    "endtimeutc": "end_time",
    "imageurl": "image_url",
}


@dataclass(slots=True)
class EpisodeState:
    """Fields collected for the episode currently being parsed"""
    name: str = ""
    description: str = ""
    start_time: str = ""
    end_time: str = ""
    image_url: str | None = None

    def to_program(self) -> Program:
        return Program(
            name=self.name,
            description=self.description,
            start_time=utc_to_local(self.start_time),
            end_time=utc_to_local(self.end_time),
            image_url=self.image_url or None,
        )


def parse_schedule(content: bytes, now: datetime) -> list[Program]:
    """
    Parse one channel's schedule document into programs inside the window

    Args:
        content: Raw XML of the scheduledepisodes endpoint
        now: Reference time for the window, sampled once by the caller

    Returns:
        Programs in document order whose local start time is within the window

    Raises:
        ParseError: If the XML is malformed
    """
    programs: list[Program] = []
    state: EpisodeState | None = None
    depth = 0
    episode_depth = 0
    skipped = 0

    try:
        for event, elem in etree.iterparse(BytesIO(content), events=("start", "end")):
            if event == "start":
                depth += 1
                if elem.tag == EPISODE_TAG:
                    state = EpisodeState()
                    episode_depth = depth
                continue

            if state is not None and elem.tag == EPISODE_TAG and depth == episode_depth:
                program = state.to_program()
                if is_within_window(program.start_time, now):
                    programs.append(program)
                else:
                    skipped += 1
                state = None
                elem.clear()
            elif state is not None and depth == episode_depth + 1:
                field_name = FIELD_TAGS.get(elem.tag)
                if field_name:
                    setattr(state, field_name, (elem.text or "").strip())

            depth -= 1
    except etree.XMLSyntaxError as e:
        logger.error(f"Malformed schedule XML: {e}")
        raise ParseError(f"Malformed schedule XML: {e}") from e

    logger.debug(f"Parsed {len(programs)} programs in window ({skipped} outside window)")
    return programs
