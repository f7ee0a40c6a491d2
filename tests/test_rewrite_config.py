"""Tests for loading the rewrite config and pairing its endpoints."""

from pathlib import Path

import pytest
from conftest import write_config

from rewrite_config import build_pairs, build_pairs_with_paths, load_config, parse_config
from rewrite_errors import ConfigParseError, ConfigReadError, InvalidConfigError


def _entry(path: str, branch: str, key: object, role: str, **extra: object) -> dict[str, object]:
    entry: dict[str, object] = {
        "repository-path": path,
        "repository-branch": branch,
        "match-key": key,
        "repo-type": role,
    }
    entry.update(extra)
    return entry


def test_pairs_are_built_and_sorted_by_key(tmp_path) -> None:
    config = load_config(
        write_config(
            tmp_path / "rewrite.toml",
            [
                _entry("/src/b", "main", "beta", "source"),
                _entry("/dst/b", "dev", "beta", "target"),
                _entry("/dst/a", "dev", "alpha", "target"),
                _entry("/src/a", "main", "alpha", "source"),
            ],
        )
    )

    build = build_pairs_with_paths(config)

    assert [pair.key for pair in build.pairs] == ["alpha", "beta"]
    assert build.pairs[0].source.path == Path("/src/a")
    assert build.pairs[0].target.branch == "dev"
    assert build.tracked_paths == [Path("/src/a"), Path("/dst/a"), Path("/src/b"), Path("/dst/b")]
    assert build.ignored_paths == []


def test_match_key_accepts_integer(tmp_path) -> None:
    config = load_config(
        write_config(
            tmp_path / "rewrite.toml",
            [_entry("/s", "main", 7, "source"), _entry("/t", "main", 7, "target")],
        )
    )

    assert config.repos[0].match_key == "7"
    assert build_pairs(config)[0].key == "7"


def test_duplicate_source_is_invalid(tmp_path) -> None:
    config = parse_config(
        {
            "repo": [
                _entry("/s1", "main", "k", "source"),
                _entry("/s2", "main", "k", "source"),
                _entry("/t", "main", "k", "target"),
            ]
        },
        tmp_path / "inline.toml",
    )

    with pytest.raises(InvalidConfigError, match="multiple source repos defined for match-key k"):
        build_pairs(config)


def test_duplicate_target_is_invalid(tmp_path) -> None:
    config = parse_config(
        {"repo": [_entry("/t1", "main", 1, "target"), _entry("/t2", "main", 1, "target")]},
        tmp_path / "inline.toml",
    )

    with pytest.raises(InvalidConfigError, match="multiple target repos"):
        build_pairs(config)


def test_incomplete_pair_names_the_key(tmp_path) -> None:
    config = parse_config({"repo": [_entry("/s", "main", "lonely", "source")]}, tmp_path / "x.toml")

    with pytest.raises(InvalidConfigError, match="match-key lonely must define both source and target repos"):
        build_pairs(config)


@pytest.mark.parametrize("flag", [True, 1])
def test_ignored_key_is_excluded_but_recorded(tmp_path, flag) -> None:
    config = parse_config(
        {
            "repo": [
                _entry("/s", "main", "skip", "source", ignore=flag),
                _entry("/t1", "main", "skip", "target"),
                _entry("/t2", "main", "skip", "target"),
                _entry("/keep-s", "main", "keep", "source"),
                _entry("/keep-t", "main", "keep", "target"),
            ]
        },
        tmp_path / "x.toml",
    )

    build = build_pairs_with_paths(config)

    assert [pair.key for pair in build.pairs] == ["keep"]
    assert build.ignored_paths == [Path("/s"), Path("/t1"), Path("/t2")]
    assert Path("/s") not in build.tracked_paths


def test_ignore_zero_or_false_keeps_pair(tmp_path) -> None:
    config = parse_config(
        {"repo": [_entry("/s", "main", "k", "source", ignore=0), _entry("/t", "main", "k", "target", ignore=False)]},
        tmp_path / "x.toml",
    )

    assert [pair.key for pair in build_pairs(config)] == ["k"]


def test_ignore_rejects_strings(tmp_path) -> None:
    with pytest.raises(ConfigParseError):
        parse_config({"repo": [_entry("/s", "main", "k", "source", ignore="yes")]}, tmp_path / "x.toml")


def test_match_key_rejects_other_types(tmp_path) -> None:
    with pytest.raises(ConfigParseError):
        parse_config({"repo": [_entry("/s", "main", 1.5, "source")]}, tmp_path / "x.toml")


def test_unknown_role_is_parse_error(tmp_path) -> None:
    with pytest.raises(ConfigParseError):
        parse_config({"repo": [_entry("/s", "main", "k", "mirror")]}, tmp_path / "x.toml")


def test_missing_file_is_read_error(tmp_path) -> None:
    with pytest.raises(ConfigReadError) as excinfo:
        load_config(tmp_path / "absent.toml")
    assert excinfo.value.path == tmp_path / "absent.toml"


def test_invalid_toml_is_parse_error(tmp_path) -> None:
    path = tmp_path / "broken.toml"
    path.write_text("[[repo]\nrepository-path = \n", encoding="utf-8")

    with pytest.raises(ConfigParseError, match="failed to parse git rewrite config"):
        load_config(path)
