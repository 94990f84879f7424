from __future__ import annotations

from pathlib import Path

import pytest

from releaselink.assets import content_type_for, glob_assets, match_globs
from releaselink.models import AssetSpec, ResolvedAsset


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    for rel in ("dist/a.zip", "dist/b.zip", ".hidden", "docs/readme.md", "docs/sub/x.txt"):
        target = tmp_path / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(rel, encoding="utf-8")
    return tmp_path


def _specs(*raw: object) -> list[AssetSpec]:
    return [AssetSpec.from_config(r) for r in raw]


def test_string_glob_yields_each_file(tree: Path) -> None:
    assets = glob_assets(tree, _specs("dist/*.zip"))
    assert assets == [ResolvedAsset("dist/a.zip"), ResolvedAsset("dist/b.zip")]


def test_dotfiles_are_included(tree: Path) -> None:
    assert ".hidden" in match_globs(tree, ["*"])


def test_directories_expand_to_their_files(tree: Path) -> None:
    assert [a.path for a in glob_assets(tree, _specs("docs"))] == [
        "docs/readme.md",
        "docs/sub/x.txt",
    ]


def test_lone_negated_glob_is_ignored(tree: Path) -> None:
    assert glob_assets(tree, _specs("!dist/*.zip")) == []
    assert glob_assets(tree, _specs(["!dist/*.zip"])) == []


def test_negated_glob_in_group_excludes(tree: Path) -> None:
    assert [a.path for a in glob_assets(tree, _specs(["dist/*.zip", "!dist/b.zip"]))] == [
        "dist/a.zip"
    ]


def test_object_matching_several_files_is_split(tree: Path) -> None:
    assets = glob_assets(tree, _specs({"path": "dist/*.zip", "name": "ignored", "label": "Zip"}))
    assert assets == [
        ResolvedAsset("dist/a.zip", name="a.zip", label="Zip", is_object=True),
        ResolvedAsset("dist/b.zip", name="b.zip", label="Zip", is_object=True),
    ]


def test_object_matching_one_file_keeps_its_name(tree: Path) -> None:
    assets = glob_assets(tree, _specs({"path": "dist/a.*", "name": "A"}))
    assert assets == [ResolvedAsset("dist/a.zip", name="A", is_object=True)]


def test_unmatched_definitions_are_kept_verbatim(tree: Path) -> None:
    assets = glob_assets(tree, _specs("nothing/*.bin", {"path": "missing.txt", "name": "M"}))
    assert ResolvedAsset("nothing/*.bin") in assets
    assert ResolvedAsset("missing.txt", name="M", is_object=True) in assets


def test_object_definitions_win_deduplication(tree: Path) -> None:
    assets = glob_assets(tree, _specs("dist/a.zip", {"path": "dist/a.zip", "name": "A"}))
    assert assets == [ResolvedAsset("dist/a.zip", name="A", is_object=True)]


def test_asset_spec_rejects_unknown_shapes() -> None:
    with pytest.raises(TypeError):
        AssetSpec.from_config(42)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("app.zip", "application/zip"),
        ("notes.json", "application/json"),
        ("README", "text/plain"),
        ("blob.unknownext", "text/plain"),
    ],
)
def test_content_type(name: str, expected: str) -> None:
    assert content_type_for(name) == expected
