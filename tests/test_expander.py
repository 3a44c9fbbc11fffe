"""
Tests for variable substitution and command expansion.
"""

import pytest

from avbbs.core.engine.expander import compose_bindings, expand, substitute
from avbbs.core.errors import CommandFailure
from avbbs.core.package.loader import merge_defaults

BINDINGS = {
    "AVBBS_ARCH": "x86_64",
    "AVBBS_PLATFORM": "pc",
    "AVBBS_BUILD_DIR": "/tmp/avbbs/zlib/build",
    "AVBBS_INSTALL_DIR": "/tmp/avbbs/install",
    "PATH": "/usr/bin",
}


def _package(commands: dict):
    return merge_defaults({"name": "zlib", "version": "1.3", "build": {"commands": commands}})


class TestSubstitute:
    def test_braced_and_bare_forms(self):
        assert substitute("${AVBBS_ARCH}-$AVBBS_PLATFORM", BINDINGS) == "x86_64-pc"

    def test_unknown_names_left_intact(self):
        assert substitute("echo $NOPE ${ALSO_NOPE}", BINDINGS) == "echo $NOPE ${ALSO_NOPE}"

    def test_double_dollar_is_literal(self):
        assert substitute("cost $$5", BINDINGS) == "cost $5"


class TestComposeBindings:
    def test_precedence(self):
        bindings = compose_bindings(
            {"AVBBS_BUILD_DIR": "/b", "X": "derived"},
            {"X": "global", "Y": "global"},
            {"Y": "ambient", "Z": "ambient", "AVBBS_BUILD_DIR": "/elsewhere"},
        )
        assert bindings == {"AVBBS_BUILD_DIR": "/b", "X": "global", "Y": "global", "Z": "ambient"}

    def test_exported_arch_does_not_beat_global(self):
        bindings = compose_bindings({}, {"AVBBS_ARCH": "aarch64"}, {"AVBBS_ARCH": "x86_64"})
        assert bindings["AVBBS_ARCH"] == "aarch64"

    def test_defaults_to_process_environment(self, monkeypatch):
        monkeypatch.setenv("AVBBS_TEST_AMBIENT", "yes")
        assert compose_bindings({}, {})["AVBBS_TEST_AMBIENT"] == "yes"


class TestExpand:
    def test_substitution_and_tokenizing(self):
        pkg = _package({"build": ["echo ${AVBBS_ARCH}"]})
        [cmd] = expand(pkg, "build", BINDINGS)
        assert cmd.program == "echo"
        assert cmd.args == ("x86_64",)
        assert cmd.argv == ["echo", "x86_64"]
        assert cmd.command == "echo ${AVBBS_ARCH}"

    def test_quoted_words_stay_together(self):
        pkg = _package({"build": ["sh -c 'echo \"$AVBBS_PLATFORM\" done'"]})
        [cmd] = expand(pkg, "build", BINDINGS)
        assert cmd.argv == ["sh", "-c", 'echo "pc" done']

    def test_ids_and_order(self):
        pkg = _package({"configure": ["./autogen.sh", "./configure"]})
        cmds = expand(pkg, "configure", BINDINGS)
        assert [c.id for c in cmds] == ["zlib:configure:0", "zlib:configure:1"]
        assert [c.program for c in cmds] == ["./autogen.sh", "./configure"]
        assert all(c.package == "zlib" and c.phase == "configure" for c in cmds)

    def test_empty_phase(self):
        assert expand(_package({}), "install", BINDINGS) == []

    def test_environment_is_bindings(self):
        [cmd] = expand(_package({"build": ["make"]}), "build", BINDINGS)
        assert cmd.env == BINDINGS

    def test_command_env_overrides(self):
        pkg = _package({"build": [{"command": "make ARCH=$AVBBS_ARCH", "env": {"AVBBS_ARCH": "arm"}}]})
        [cmd] = expand(pkg, "build", BINDINGS)
        assert cmd.args == ("ARCH=arm",)
        assert cmd.env["AVBBS_ARCH"] == "arm"

    def test_command_env_values_substituted(self):
        pkg = _package({"build": [{
            "command": "make",
            "env": {"PATH": "$AVBBS_INSTALL_DIR/usr/bin:$PATH"},
        }]})
        [cmd] = expand(pkg, "build", BINDINGS)
        assert cmd.env["PATH"] == "/tmp/avbbs/install/usr/bin:/usr/bin"

    def test_command_env_does_not_leak(self):
        pkg = _package({"build": [{"command": "make", "env": {"CC": "clang"}}, "make install"]})
        first, second = expand(pkg, "build", BINDINGS)
        assert first.env["CC"] == "clang"
        assert "CC" not in second.env

    def test_unknown_variable_passes_through(self):
        [cmd] = expand(_package({"build": ["echo $UNSET_THING"]}), "build", BINDINGS)
        assert cmd.args == ("$UNSET_THING",)

    def test_unbalanced_quote(self):
        pkg = _package({"build": ["echo 'oops"]})
        with pytest.raises(CommandFailure) as exc_info:
            expand(pkg, "build", BINDINGS)
        assert exc_info.value.phase == "build"
        assert exc_info.value.command == "echo 'oops"

    def test_expands_to_nothing(self):
        pkg = _package({"build": ["$EMPTY"]})
        with pytest.raises(CommandFailure, match="build"):
            expand(pkg, "build", {**BINDINGS, "EMPTY": ""})
