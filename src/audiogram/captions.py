import json
import logging
from dataclasses import dataclass

from audiogram.constants import PROVISIONAL_DURATION
from audiogram.errors import CaptionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caption:
    start: float
    end: float
    text: str


DEFAULT_CAPTIONS = (
    Caption(
        0.0,
        4.6,
        "I often witness pianists place their hands for the first time on a keyboard "
        "that better suits their handspan.",
    ),
    Caption(4.6, 7.5, "How often the pianist spontaneously bursts into tears..."),
    Caption(
        7.5,
        14.2,
        "A lifetime of struggling with a seemingly insurmountable problem vanishes in "
        "the moment they realize,",
    ),
    Caption(14.2, 17.5, "it's not me that is the problem, it is the instrument."),
    Caption(17.5, 20.0, "Following on that, the joy of possibility overwhelms them."),
)


def validate_captions(captions):
    """
    Checks that captions are strictly sorted, non-overlapping and non-empty in time.
    Returns them as a tuple.
    """
    captions = tuple(captions)
    previous = None
    for caption in captions:
        if not caption.start < caption.end:
            raise CaptionError(f"Caption starts at or after its end: {caption}")
        if previous is not None:
            if caption.start <= previous.start:
                raise CaptionError(f"Captions are not sorted by start: {caption}")
            if caption.start < previous.end:
                raise CaptionError(f"Caption overlaps the one before it: {caption}")
        previous = caption
    return captions


def load_captions(path):
    """
    Load captions from a JSON list of {"start", "end", "text"} objects.
    """
    try:
        with open(path, encoding="utf-8") as f:
            entries = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CaptionError(f"Could not read captions from {path}: {e}") from e

    if not isinstance(entries, list):
        raise CaptionError(f"Expected a list of captions in {path}")

    try:
        captions = [Caption(float(e["start"]), float(e["end"]), str(e["text"])) for e in entries]
    except (KeyError, TypeError, ValueError) as e:
        raise CaptionError(f"Malformed caption entry in {path}: {e}") from e

    logger.info(f"[+] Loaded {len(captions)} captions from {path}")
    return validate_captions(captions)


def captions_from_transcript(text, duration=PROVISIONAL_DURATION):
    """A plain transcript shown for the whole clip."""
    text = text.strip()
    if not text:
        return ()
    return (Caption(0.0, float(duration), text),)
