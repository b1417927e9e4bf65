from io import BytesIO
import logging

from lxml import etree # type: ignore

from radioinfo.exceptions import ParseError
from radioinfo.models import Channel

logger = logging.getLogger(__name__)

CHANNEL_TAG = "channel"


def parse_channels(content: bytes) -> list[Channel]:
    """
    Parse the channel list document into channels without programs

    Channels are emitted in document order as each channel element closes.

    Args:
        content: Raw XML of the channel list endpoint

    Returns:
        List of channels with id and name populated

    Raises:
        ParseError: If the XML is malformed or a channel id is not an integer
    """
    channels: list[Channel] = []

    try:
        for _, elem in etree.iterparse(BytesIO(content), events=("end",), tag=CHANNEL_TAG):
            channels.append(_build_channel(elem))
            elem.clear()
    except etree.XMLSyntaxError as e:
        logger.error(f"Malformed channel list XML: {e}")
        raise ParseError(f"Malformed channel list XML: {e}") from e

    logger.debug(f"Parsed {len(channels)} channels")
    return channels


def _build_channel(elem: etree._Element) -> Channel:
    """Build a channel from the id and name attributes of a channel element"""
    raw_id, name = _channel_attributes(elem)

    try:
        channel_id = int(raw_id)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid channel id: {raw_id!r}") from e

    return Channel(id=channel_id, name=name or "")


def _channel_attributes(elem: etree._Element) -> tuple[str | None, str | None]:
    """
    Read id and name by attribute name, falling back to attribute position

    The API sends id first and name second; when either name is absent
    the attribute at that position is used instead.
    """
    values = elem.attrib.values()

    raw_id = elem.get("id")
    if raw_id is None and len(values) > 0:
        raw_id = values[0]

    name = elem.get("name")
    if name is None and len(values) > 1:
        name = values[1]

    return raw_id, name
