"""
Profile registry - Named lookup of transcoding profiles.

The built-in profiles cover two codec families (MP3 and Opus), with and
without replay gain normalization, at several bitrates. A host builds the
table once and passes it to whatever needs to resolve profile names;
user-defined profiles are added with merge(), which returns a new registry.
"""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from .constants import MIME_MP3, MIME_OGG, SUFFIX_MP3, SUFFIX_OPUS
from .errors import ProfileNotFoundError
from .profile import Profile, new_profile, with_bitrate

# Strip replay gain tags after applying them so clients do not normalize twice
_STRIP_RG_TAGS = (
    "-metadata replaygain_album_gain= -metadata replaygain_album_peak= "
    "-metadata replaygain_track_gain= -metadata replaygain_track_peak= "
    "-metadata r128_album_gain= -metadata r128_track_gain="
)


def _replaygain_filter(preamp_db: int) -> str:
    return (
        f"volume=replaygain=track:replaygain_preamp={preamp_db}dB:replaygain_noclip=0, "
        "alimiter=level=disabled, asidedata=mode=delete:type=REPLAYGAIN"
    )


MP3 = new_profile(
    MIME_MP3,
    SUFFIX_MP3,
    128,
    "ffmpeg -v 0 -i <file> -ss <seek> -map 0:a:0 -vn -b:a <bitrate> -c:a libmp3lame -f mp3 -",
)

MP3_RG = new_profile(
    MIME_MP3,
    SUFFIX_MP3,
    128,
    "ffmpeg -v 0 -i <file> -ss <seek> -map 0:a:0 -vn -b:a <bitrate> -c:a libmp3lame "
    f'-af "{_replaygain_filter(6)}" {_STRIP_RG_TAGS} -f mp3 -',
)

OPUS = new_profile(
    MIME_OGG,
    SUFFIX_OPUS,
    96,
    "ffmpeg -v 0 -i <file> -ss <seek> -map 0:a:0 -vn -b:a <bitrate> -c:a libopus -vbr on -f opus -",
)

OPUS_RG = new_profile(
    MIME_OGG,
    SUFFIX_OPUS,
    96,
    "ffmpeg -v 0 -i <file> -ss <seek> -map 0:a:0 -vn -b:a <bitrate> -c:a libopus -vbr on "
    f'-af "{_replaygain_filter(6)}" {_STRIP_RG_TAGS} -f opus -',
)

# A +15dB preamp puts the result a few dB above the usual replay gain target,
# closer to the level of other in-car sources (radio, phone audio)
OPUS_RG_LOUD = new_profile(
    MIME_OGG,
    SUFFIX_OPUS,
    96,
    "ffmpeg -v 0 -i <file> -ss <seek> -map 0:a:0 -vn -b:a <bitrate> -c:a libopus -vbr on "
    f'-af "aresample=96000:resampler=soxr, {_replaygain_filter(15)}" {_STRIP_RG_TAGS} -f opus -',
)

OPUS_128 = with_bitrate(OPUS, 128)
OPUS_128_RG = with_bitrate(OPUS_RG, 128)
OPUS_128_RG_LOUD = with_bitrate(OPUS_RG_LOUD, 128)
OPUS_192 = with_bitrate(OPUS, 192)

BUILTIN_PROFILES: Mapping[str, Profile] = MappingProxyType(
    {
        "mp3": MP3,
        "mp3_rg": MP3_RG,
        "opus_car": OPUS_RG_LOUD,
        "opus": OPUS,
        "opus_rg": OPUS_RG,
        "opus_128_car": OPUS_128_RG_LOUD,
        "opus_128": OPUS_128,
        "opus_128_rg": OPUS_128_RG,
        "opus_192": OPUS_192,
    }
)


class ProfileRegistry(Mapping[str, Profile]):
    """Read-only mapping of profile name to Profile."""

    def __init__(self, profiles: Mapping[str, Profile] | None = None) -> None:
        self._profiles: Mapping[str, Profile] = MappingProxyType(dict(profiles or {}))

    def __getitem__(self, name: str) -> Profile:
        try:
            return self._profiles[name]
        except KeyError:
            raise ProfileNotFoundError(name, sorted(self._profiles)) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def __repr__(self) -> str:
        return f"ProfileRegistry({sorted(self._profiles)!r})"

    def merge(self, extra: Mapping[str, Profile]) -> "ProfileRegistry":
        """
        Return a new registry with extra profiles added.

        Entries in extra replace existing entries of the same name.
        """
        return ProfileRegistry({**self._profiles, **extra})


def builtin_registry() -> ProfileRegistry:
    """Build a registry holding the built-in profiles."""
    return ProfileRegistry(BUILTIN_PROFILES)
