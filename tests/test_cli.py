import json

from localeforge import cli

PAGE = """export function Page() {
  return (
    <main>
      <h1>Hello world</h1>
      <p>{t("page.intro")}</p>
    </main>
  );
}
"""


def _project(tmp_path, monkeypatch):
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "Page.tsx").write_text(PAGE, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return root


def test_suggest_prints_key(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    assert cli.main(["suggest", "Hello, world!"]) == 0
    assert capsys.readouterr().out.strip() == "ui.hello_world"

    assert cli.main(["suggest", "Hello", "--file", "src/UserProfile.tsx"]) == 0
    assert capsys.readouterr().out.strip() == "user_profile.hello"


def test_scan_json_lists_candidates(tmp_path, monkeypatch, capsys):
    root = _project(tmp_path, monkeypatch)

    assert cli.main(["scan", str(root), "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)

    plain = [entry for entry in payload if not entry["localized"]]
    localized = [entry for entry in payload if entry["localized"]]
    assert [entry["text"] for entry in plain] == ["Hello world"]
    assert plain[0]["file"] == "src/Page.tsx"
    assert plain[0]["keySuggestion"] == "page.hello_world"
    assert [entry["keyPath"] for entry in localized] == ["page.intro"]


def test_scan_text_output_and_missing_root(tmp_path, monkeypatch, capsys):
    root = _project(tmp_path, monkeypatch)

    assert cli.main(["scan", str(root), "--no-localized"]) == 0
    out = capsys.readouterr().out
    assert "src/Page.tsx:4:10  'Hello world' -> page.hello_world" in out
    assert "[localized]" not in out
    assert "Files scanned:   1" in out

    assert cli.main(["scan", str(tmp_path / "nowhere")]) == 1


def test_wrap_updates_file(tmp_path, monkeypatch, capsys):
    root = _project(tmp_path, monkeypatch)
    argv = [
        "wrap",
        "src/Page.tsx",
        "--project-root",
        str(root),
        "--line",
        "4",
        "--column",
        "10",
        "--text",
        "Hello world",
        "--key",
        "page.hello_world",
        "--import-source",
        "react-i18next",
    ]

    assert cli.main(argv) == 0
    assert "(import updated)" in capsys.readouterr().out
    updated = (root / "src" / "Page.tsx").read_text(encoding="utf-8")
    assert updated.startswith('import { t } from "react-i18next";\n')
    assert '<h1>{t("page.hello_world")}</h1>' in updated

    assert cli.main(argv) == 2
    assert "rescanning" in capsys.readouterr().out


def test_wrap_dry_run_prints_diff_only(tmp_path, monkeypatch, capsys):
    root = _project(tmp_path, monkeypatch)
    path = root / "src" / "Page.tsx"

    code = cli.main(
        [
            "wrap",
            str(path),
            "--line",
            "4",
            "--column",
            "10",
            "--text",
            "Hello world",
            "--key",
            "page.hello_world",
            "--dry-run",
        ]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert '+      <h1>{t("page.hello_world")}</h1>' in out
    assert "-      <h1>Hello world</h1>" in out
    assert path.read_text(encoding="utf-8") == PAGE


def test_wrap_rejects_invalid_function_name(tmp_path, monkeypatch, capsys):
    root = _project(tmp_path, monkeypatch)
    code = cli.main(
        [
            "wrap",
            str(root / "src" / "Page.tsx"),
            "--line",
            "4",
            "--column",
            "10",
            "--text",
            "Hello world",
            "--key",
            "page.hello_world",
            "--function",
            "not-valid",
        ]
    )
    assert code == 1
    assert "not a valid identifier" in capsys.readouterr().out


def test_invalid_configuration_exits_with_error(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOCALEFORGE_WORKERS", "zero")

    assert cli.main(["config"]) == 1
    assert "workers" in capsys.readouterr().out


def test_config_command_shows_sources(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOCALEFORGE_NAMESPACE", "checkout")

    assert cli.main(["config"]) == 0
    out = capsys.readouterr().out
    assert "'checkout'  (env:process)" in out
    assert "(default)" in out
