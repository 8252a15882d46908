"""Archive name parsing and formatting."""

from __future__ import annotations

import pytest

from squest.modules.pkgname import (ArtifactName, format_artifact_filename, parse_artifact_filename,
                                    split_artifact_filename)


@pytest.fixture
def populated(mirror):
    mirror.add("perl/perl-File-Copy-Recursive")
    mirror.add("system/htop")
    return mirror


class TestParse:
    def test_hyphenated_name(self, populated, index) -> None:
        assert parse_artifact_filename("perl-File-Copy-Recursive-0.2.3-x86_64-1_SBo", index) == \
            ArtifactName("perl/perl-File-Copy-Recursive", "0.2.3")

    @pytest.mark.parametrize("ext", [".tgz", ".txz", ".tbz", ".tlz"])
    def test_extensions(self, populated, index, ext: str) -> None:
        assert parse_artifact_filename(f"htop-3.2.1-i586-2_SBo{ext}", index) == ArtifactName("system/htop", "3.2.1")

    @pytest.mark.parametrize("name", [
        "perl-File-Copy-Recursive-0.2.3-x86_64-1",          # untagged
        "htop-3.2.1-x86_64-1alien.txz",                      # foreign tag
        "htop-3.2.1-sparc-1_SBo.tgz",                        # unknown arch
        "htop-3.2.1-x86_64-x_SBo.tgz",                       # non-numeric build
        "btop-1.0-x86_64-1_SBo.tgz",                         # not in the mirror
        "htop-3.2-rc1-x86_64-1_SBo.tgz",                     # splits as prgnam htop-3.2
        "x86_64-1_SBo.tgz",
        "",
    ])
    def test_rejected(self, populated, index, name: str) -> None:
        assert parse_artifact_filename(name, index) is None


class TestFormat:
    def test_format(self) -> None:
        assert format_artifact_filename("htop", "3.2.1", "x86_64", "1") == "htop-3.2.1-x86_64-1_SBo.tgz"
        assert format_artifact_filename("htop", "3.2.1", "x86_64", "2_SBo", ext=".txz") == "htop-3.2.1-x86_64-2_SBo.txz"

    def test_formatted_name_parses_back(self, populated, index) -> None:
        name = format_artifact_filename("perl-File-Copy-Recursive", "0.2.3", "noarch", 4)
        assert parse_artifact_filename(name, index) == ArtifactName("perl/perl-File-Copy-Recursive", "0.2.3")

    def test_split(self) -> None:
        assert split_artifact_filename("htop-3.2.1-x86_64-1_SBo.tgz") == ("htop-3.2.1", "x86_64", "1_SBo")
        assert split_artifact_filename("htop-3.2.1-x86_64-1") is None
