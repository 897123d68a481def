"""Tests for profile registry."""

import shlex

import pytest

from audio_transcoder.errors import ProfileNotFoundError
from audio_transcoder.profile import new_profile
from audio_transcoder.registry import (
    BUILTIN_PROFILES,
    MP3,
    OPUS,
    OPUS_RG_LOUD,
    ProfileRegistry,
    builtin_registry,
)

BUILTIN_NAMES = {
    "mp3",
    "mp3_rg",
    "opus",
    "opus_rg",
    "opus_car",
    "opus_128",
    "opus_128_rg",
    "opus_128_car",
    "opus_192",
}


class TestBuiltinProfiles:
    """Tests for the built-in profile set."""

    def test_exact_name_set(self):
        """Test the documented names and nothing else."""
        assert set(builtin_registry()) == BUILTIN_NAMES

    @pytest.mark.parametrize("name", sorted(BUILTIN_NAMES))
    def test_suffix_and_mime_match_codec(self, name):
        """Test suffix/MIME are consistent with the codec family."""
        profile = builtin_registry()[name]
        if name.startswith("mp3"):
            assert (profile.suffix, profile.mime) == ("mp3", "audio/mpeg")
            assert "libmp3lame" in profile.exec_template
        else:
            assert (profile.suffix, profile.mime) == ("opus", "audio/ogg")
            assert "libopus" in profile.exec_template

    @pytest.mark.parametrize("name", sorted(BUILTIN_NAMES))
    def test_templates_tokenize_with_placeholders(self, name):
        """Test every built-in template splits cleanly and streams to stdout."""
        parts = shlex.split(builtin_registry()[name].exec_template)
        assert parts[0] == "ffmpeg"
        assert {"<file>", "<seek>", "<bitrate>"} <= set(parts)
        assert parts[-1] == "-"

    def test_replay_gain_variants(self):
        """Test replay gain filters only appear in rg/car profiles."""
        registry = builtin_registry()
        for name, profile in registry.items():
            has_rg = "replaygain=track" in profile.exec_template
            assert has_rg == (name.endswith("_rg") or name.endswith("_car"))

    def test_car_profiles_are_louder(self):
        """Test the loud variant uses a bigger preamp than plain replay gain."""
        registry = builtin_registry()
        assert "replaygain_preamp=15dB" in registry["opus_car"].exec_template
        assert "replaygain_preamp=6dB" in registry["opus_rg"].exec_template

    def test_bitrate_tiers(self):
        """Test the Opus profiles span at least three bitrates."""
        registry = builtin_registry()
        assert registry["opus"].bitrate == 96
        assert registry["opus_128"].bitrate == 128
        assert registry["opus_128_car"].bitrate == 128
        assert registry["opus_192"].bitrate == 192
        assert registry["mp3"].bitrate == 128
        assert len({p.bitrate for n, p in registry.items() if n.startswith("opus")}) >= 3

    def test_derived_profiles_share_template(self):
        """Test bitrate tiers are derived without changing the base."""
        registry = builtin_registry()
        assert registry["opus_192"].exec_template == OPUS.exec_template
        assert registry["opus_128_car"].exec_template == OPUS_RG_LOUD.exec_template
        assert OPUS.bitrate == 96


class TestProfileRegistry:
    """Tests for ProfileRegistry behaviour."""

    def test_get_unknown_returns_none(self):
        """Test lookup of an unknown name signals absence."""
        assert builtin_registry().get("wav") is None
        assert "wav" not in builtin_registry()

    def test_getitem_unknown_raises(self):
        """Test indexing an unknown name raises a KeyError subclass."""
        with pytest.raises(KeyError) as exc_info:
            builtin_registry()["wav"]
        assert isinstance(exc_info.value, ProfileNotFoundError)
        assert "mp3" in str(exc_info.value)

    def test_read_only(self):
        """Test the registry cannot be modified."""
        registry = builtin_registry()
        with pytest.raises(TypeError):
            registry["x"] = MP3  # type: ignore[index]

    def test_copies_source_mapping(self):
        """Test later changes to the source dict are not visible."""
        source = {"a": MP3}
        registry = ProfileRegistry(source)
        source["b"] = OPUS
        assert list(registry) == ["a"]

    def test_merge_returns_new_registry(self):
        """Test merge leaves the original untouched."""
        base = builtin_registry()
        flac = new_profile("audio/flac", "flac", 0, "ffmpeg -i <file> -f flac -")
        merged = base.merge({"flac": flac})

        assert merged["flac"] is flac
        assert "flac" not in base
        assert len(merged) == len(base) + 1

    def test_merge_overrides(self):
        """Test merged entries replace same-named ones."""
        custom = new_profile("audio/mpeg", "mp3", 320, "lame <file> -")
        merged = builtin_registry().merge({"mp3": custom})
        assert merged["mp3"] is custom
        assert BUILTIN_PROFILES["mp3"] is MP3

    def test_independent_instances(self):
        """Test two built-in registries do not share state."""
        first = builtin_registry().merge({"x": MP3})
        assert "x" not in builtin_registry()
        assert "x" in first
