# tests/test_file_reading.py

"""Tests for recipe loading, library header scanning and define-package parsing."""

import io
import tarfile
from pathlib import Path

import pytest

from elsrc.core.exceptions import DescriptorError, RecipeLoadError
from elsrc.core.file_reading import (
    decode_source_bytes,
    load_recipe_file,
    parse_define_package,
    parse_library_headers,
    parse_recipe_string,
    read_archive_metadata,
    set_library_name,
)

LIBRARY = """\
;;; foo.el --- Frobnicate things  -*- lexical-binding: t -*-

;; Author: Someone <someone@example.com>
;; Version: 0.9
;; Package-Version: 1.2
;; Package-Requires: ((emacs "25.1")
;;                    (dash "2.19.1") cl-lib)
;; Keywords: tools

;;; Commentary:

;; Frobnicates everything.

;;; Code:

(provide 'foo)
;;; foo.el ends here
"""


# ==============================================================
# RECIPES
# ==============================================================

def test_parse_recipe_string_both_forms():
    name, recipe = parse_recipe_string('(magit :fetcher github :repo "magit/magit" :files ("lisp/*.el"))')
    assert name == "magit"
    assert recipe.fetcher == "github"
    assert recipe.repo == "magit/magit"
    assert recipe.files == ["lisp/*.el"]

    name, recipe = parse_recipe_string('(dash (:fetcher github :repo "magnars/dash.el"))')
    assert name == "dash"
    assert recipe.repo == "magnars/dash.el"


def test_recipe_keeps_unknown_keys():
    _, recipe = parse_recipe_string('(x :fetcher github :repo "a/x" :old-names (y))')
    assert recipe.model_extra == {"old_names": ["y"]}


@pytest.mark.parametrize("text", [
    "(x :fetcher github)",
    "(x :fetcher git)",
    '"just a string"',
    "(x :fetcher",
])
def test_invalid_recipe_strings(text):
    with pytest.raises(RecipeLoadError):
        parse_recipe_string(text)


def test_load_recipe_file_lisp_and_yaml(tmp_path: Path):
    lisp = tmp_path / "foo"
    lisp.write_text('(foo :fetcher gitlab :repo "me/foo" :branch "main")\n', encoding="utf-8")
    yaml_file = tmp_path / "bar.yaml"
    yaml_file.write_text("name: bar\nfetcher: git\nurl: https://example.com/bar.git\nstable: true\n",
                         encoding="utf-8")

    foo = load_recipe_file(lisp)
    bar = load_recipe_file(yaml_file)

    assert (foo.fetcher, foo.repo, foo.branch) == ("gitlab", "me/foo", "main")
    assert (bar.fetcher, bar.url, bar.stable) == ("git", "https://example.com/bar.git", True)


def test_load_recipe_file_rejects_empty_yaml(tmp_path: Path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")

    with pytest.raises(RecipeLoadError):
        load_recipe_file(path)

# ==============================================================
# LIBRARY HEADERS
# ==============================================================

def test_parse_library_headers():
    vector = parse_library_headers(LIBRARY, "foo.el").vector

    name, requires, summary, version, commentary = vector
    assert name == "foo"
    assert summary == "Frobnicate things"
    assert version == "1.2"
    assert requires == [("emacs", "25.1"), ("dash", "2.19.1"), ("cl-lib", "0")]
    assert commentary == "Frobnicates everything."


def test_parse_library_headers_without_version():
    text = ";;; bare.el --- Nothing\n;;; Code:\n"

    with pytest.raises(DescriptorError):
        parse_library_headers(text, "bare.el")

    vector = parse_library_headers(text, "bare.el", require_version=False).vector
    assert vector[0] == "bare"
    assert vector[3] == ""


def test_headers_after_code_section_are_ignored():
    text = ";;; late.el --- Late\n;;; Code:\n;; Version: 3.0\n"

    with pytest.raises(DescriptorError):
        parse_library_headers(text, "late.el")


def test_name_falls_back_to_artifact_name_without_version():
    text = ";;; -*- lexical-binding: t -*-\n;; Package-Version: 20240105.930\n"

    assert parse_library_headers(text, "bar-20240105.930.el").vector[0] == "bar"
    assert parse_library_headers(text, "bar-mode.el").vector[0] == "bar-mode"


@pytest.mark.parametrize("first, expected", [
    (";;; bar-mode.el --- Bar mode  -*- lexical-binding: t -*-",
     ";;; bar.el --- Bar mode  -*- lexical-binding: t -*-"),
    (";;; -*- lexical-binding: t -*-", ";;; bar.el --- -*- lexical-binding: t -*-"),
    ("(provide 'bar)", ";;; bar.el ---"),
])
def test_set_library_name(first: str, expected: str):
    lines = [first, ";;; Code:"]

    set_library_name(lines, "bar")

    assert lines[0] == expected
    assert parse_library_headers("\n".join(lines), "x.el", require_version=False).vector[0] == "bar"


def test_decode_source_bytes_handles_bom_and_line_endings():
    assert decode_source_bytes("a\r\nb".encode("utf-8-sig")) == "a\nb"
    assert decode_source_bytes("ç\r\n".encode("utf-16")) == "ç\n"

# ==============================================================
# DEFINE-PACKAGE
# ==============================================================

def test_parse_define_package():
    info = parse_define_package(
        '(define-package "foo" "1.2" "Frobnicate things" \'((emacs "25.1") (dash "2.19.1"))\n'
        '  :url "https://example.com/foo" :keywords \'("tools"))'
    )

    assert info.name == "foo"
    assert info.version == "1.2"
    assert info.summary == "Frobnicate things"
    assert info.requires == [("emacs", "25.1"), ("dash", "2.19.1")]
    assert info.extras == {"url": "https://example.com/foo", "keywords": ["tools"]}


def test_parse_define_package_with_nil_requirements():
    info = parse_define_package('(define-package "foo" "1.0" "Foo" nil)')
    assert info.requires == []


@pytest.mark.parametrize("text", ['(provide \'foo)', '(define-package foo "1.0")', "(define-package"])
def test_parse_define_package_rejects_other_forms(text):
    with pytest.raises(DescriptorError):
        parse_define_package(text)


def _tar_with(path: Path, members: dict) -> Path:
    with tarfile.open(path, "w") as archive:
        for name, content in members.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return path


def test_read_archive_metadata(tmp_path: Path):
    path = _tar_with(tmp_path / "foo-1.2.tar", {
        "foo-1.2/foo.el": "(provide 'foo)\n",
        "foo-1.2/foo-pkg.el": '(define-package "foo" "1.2" "Foo" \'((bar "1.0")))\n',
    })

    info = read_archive_metadata(path)

    assert (info.name, info.version, info.requires) == ("foo", "1.2", [("bar", "1.0")])


def test_read_archive_metadata_without_pkg_file(tmp_path: Path):
    path = _tar_with(tmp_path / "foo-1.2.tar", {"foo-1.2/foo.el": "(provide 'foo)\n"})

    with pytest.raises(DescriptorError):
        read_archive_metadata(path)
