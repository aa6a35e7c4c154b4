"""Tests for the streamblocks CLI."""

from __future__ import annotations

import json

from click.testing import CliRunner

from streamblocks.cli.main import cli

DOC = "Hello world.\n\n![a](http://x/y.png)Some $E=mc^2$ explained.\nmore"


def _json_lines(output: str) -> list[dict[str, str]]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


class TestSegmentCommand:
    def test_segment_stdin(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["segment", "-", "--chunk-size", "3"], input=DOC)
        assert result.exit_code == 0, result.output
        units = _json_lines(result.output)
        assert [u["kind"] for u in units] == ["paragraph", "image", "inline_math", "remainder"]
        assert "".join(u["text"] for u in units) == DOC

    def test_segment_file_discard(self, tmp_path):
        path = tmp_path / "answer.md"
        path.write_text("Done.\n\n$$x=1", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(cli, ["segment", str(path), "--on-end", "discard"])
        assert result.exit_code == 0
        assert _json_lines(result.output) == [{"kind": "paragraph", "text": "Done.\n\n"}]

    def test_segment_normalize_math(self):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["segment", "-", "--normalize-math"], input="Let $a$ be.\n",
        )
        assert result.exit_code == 0
        assert _json_lines(result.output) == [{"kind": "inline_math", "text": "Let $$a$$ be."}]

    def test_segment_standalone_display_math(self):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["segment", "-", "--display-math", "standalone", "--chunk-size", "100"],
            input="x $$a$$ y",
        )
        assert result.exit_code == 0
        assert _json_lines(result.output) == [{"kind": "remainder", "text": "x $$a$$ y"}]

    def test_invalid_config_exits(self, isolated_config):
        config_dir = isolated_config / ".streamblocks"
        config_dir.mkdir()
        (config_dir / "config.toml").write_text('[segmenter]\nrule_order = ["heading"]\n')
        runner = CliRunner()
        result = runner.invoke(cli, ["segment", "-"], input="x")
        assert result.exit_code == 1
        assert "Unknown rule" in result.output


class TestRenderCommand:
    def test_render_plain(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["render", "-", "--no-rich"], input=DOC)
        assert result.exit_code == 0, result.output
        assert "Hello world." in result.output
        assert "![a](http://x/y.png)" in result.output
        assert "more" in result.output

    def test_render_rich(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["render", "-", "--rich", "--chunk-size", "4"], input=DOC)
        assert result.exit_code == 0, result.output
        assert "[image]" in result.output
        assert "http://x/y.png" in result.output
        assert "E=mc^2" in result.output


class TestAskCommand:
    def test_missing_key(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["ask", "hello", "--provider", "dashscope"])
        assert result.exit_code == 1
        assert "API key" in result.output

    def test_requires_prompt(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["ask"])
        assert result.exit_code != 0


class TestConfigCommand:
    def test_config(self, monkeypatch):
        monkeypatch.setenv("DASHSCOPE_API_KEY", "sk-1234567890")
        runner = CliRunner()
        result = runner.invoke(cli, ["config"])
        assert result.exit_code == 0
        assert "Environment:" in result.output
        assert "sk-12345..." in result.output
        assert "sk-1234567890" not in result.output
        assert "display_math: any" in result.output
        assert "on_end: flush" in result.output
