"""Raw instrument decoders.

:func:`load` picks the decoder from the file suffix and returns a validated
:class:`~gprpipe.core.Radargram`.
"""

from pathlib import Path
from typing import Optional
import logging

from gprpipe.core import Radargram, UnsupportedFormatVariant
from gprpipe.contracts import assert_radargram
from gprpipe.formats.base import FormatDecoder, SampleLayout
from gprpipe.formats.mala import MalaDecoder
from gprpipe.formats.pulseekko import PulseEkkoDecoder

__all__ = [
    "FormatDecoder",
    "SampleLayout",
    "MalaDecoder",
    "PulseEkkoDecoder",
    "DECODERS",
    "decoder_for",
    "load",
    "is_header_file",
]

logger = logging.getLogger(__name__)

DECODERS = (MalaDecoder, PulseEkkoDecoder)


def decoder_for(path, cor_path: Optional[str] = None,
                override_antenna_mhz: Optional[float] = None) -> FormatDecoder:
    """Instantiate the decoder handling ``path``'s suffix.

    Raises
    ------
    UnsupportedFormatVariant
        If no decoder handles the suffix.
    """
    for decoder_cls in DECODERS:
        if decoder_cls.handles(path):
            return decoder_cls(cor_path=cor_path, override_antenna_mhz=override_antenna_mhz)
    raise UnsupportedFormatVariant(f"Unknown file suffix '{Path(path).suffix}'", filepath=path)


def is_header_file(path) -> bool:
    """True for the header member of a supported pair (used to de-duplicate globs)."""
    suffix = Path(path).suffix.lower()
    return any(suffix == cls.header_suffix for cls in DECODERS)


def load(path, cor_path: Optional[str] = None,
         override_antenna_mhz: Optional[float] = None) -> Radargram:
    """Decode one file into a validated radargram."""
    decoder = decoder_for(path, cor_path=cor_path, override_antenna_mhz=override_antenna_mhz)
    radargram = decoder.decode(path)
    assert_radargram(radargram, stage="decode")
    logger.info("Decoded %s: %d traces x %d samples (%s)", path, radargram.n_traces,
                radargram.samples_per_trace, decoder.instrument)
    return radargram
