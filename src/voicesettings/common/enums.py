from __future__ import annotations

from enum import Enum


class OutputFormat(str, Enum):
    """Audio encodings the dialog service can stream back.

    The names match the values written in config.json. Older files stored the
    ordinal instead of the name, so both are accepted by ``parse``.
    """

    PCM_16KHZ_16BIT_MONO = "Pcm16KHz16BitMono"
    MPEG_16KHZ_32KBITRATE_MONO = "Mpeg16KHz32KBitRateMono"
    MPEG_24KHZ_48KBITRATE_MONO = "Mpeg24KHz48KBitRateMono"
    MPEG_24KHZ_96KBITRATE_MONO = "Mpeg24KHz96KBitRateMono"  # default
    OPUS_16KHZ_16BIT_MONO = "Opus16KHz16BitMono"

    @classmethod
    def parse(cls, value: object) -> OutputFormat:
        """Resolve a config value to a member.

        Args:
            value: Member, member value (any case) or ordinal

        Returns:
            Matching OutputFormat

        Raises:
            ValueError: If nothing matches
        """
        if isinstance(value, cls):
            return value
        members = list(cls)
        if isinstance(value, int) and not isinstance(value, bool):
            if 0 <= value < len(members):
                return members[value]
        elif isinstance(value, str):
            wanted = value.strip().lower()
            for member in members:
                if wanted in (member.value.lower(), member.name.lower()):
                    return member
        raise ValueError(f"unsupported output format: {value!r}")
