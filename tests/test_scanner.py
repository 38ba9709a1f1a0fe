import hashlib

import pytest

from localeforge import scanner as scanner_module
from localeforge.errors import ErrorCategory, ScanAborted
from localeforge.scanner import Scanner, candidate_id, scan, scan_source

from helpers import position_of

NAV = """import { useTranslation } from "react-i18next";

export function Nav({ intl }) {
  const { t } = useTranslation();
  return (
    <nav>
      <a href="/">{t("nav.home")}</a>
      <span>{intl.formatMessage({ id: "nav.about" })}</span>
      <p>Welcome back</p>
      <em>{someOtherFn("nav.other")}</em>
    </nav>
  );
}
"""


def _write(root, relative, content):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_scan_source_emits_jsx_text_as_plain_candidate():
    candidates = scan_source(NAV, "src/Nav.tsx")
    plain = [candidate for candidate in candidates if not candidate.localized]

    assert len(plain) == 1
    (welcome,) = plain
    line, column = position_of(NAV, "Welcome back")
    assert welcome.text == "Welcome back"
    assert (welcome.line, welcome.column) == (line, column)
    assert welcome.file == "src/Nav.tsx"
    assert welcome.context == "<p>Welcome back</p>"
    assert welcome.key_path is None
    assert welcome.id == hashlib.md5(
        f"Welcome back-src/Nav.tsx-{line}-{column}-plain".encode("utf-8")
    ).hexdigest()


def test_scan_source_detects_localized_calls():
    candidates = scan_source(NAV, "src/Nav.tsx")
    localized = {candidate.key_path: candidate for candidate in candidates if candidate.localized}

    assert set(localized) == {"nav.home", "nav.about"}
    home = localized["nav.home"]
    assert home.text == "nav.home"
    assert (home.line, home.column) == position_of(NAV, 't("nav.home")')
    about = localized["nav.about"]
    assert (about.line, about.column) == position_of(NAV, "intl.formatMessage(")


def test_scan_source_ignores_other_calls_and_bare_literals():
    text = (
        'someOtherFn("nav.home");\n'
        'alert("Saved!");\n'
        "const label = `Plain template`;\n"
        "t(`nav.${section}`);\n"
        "t(key);\n"
        "t();\n"
        'formatMessage({ defaultMessage: "Hi" });\n'
    )
    assert scan_source(text, "x.ts") == []


def test_scan_source_accepts_template_and_translate_variants():
    text = "t(`nav.tpl`);\ntranslate('nav.single');\nformatMessage({ id: 'nav.obj' });\n"
    keys = [candidate.key_path for candidate in scan_source(text, "x.ts")]
    assert keys == ["nav.tpl", "nav.single", "nav.obj"]


def test_scan_source_uses_configured_translation_functions():
    text = 'i18n.t("nav.home");\nt("nav.other");\n'
    default = scan_source(text, "x.ts")
    assert [candidate.key_path for candidate in default] == ["nav.other"]

    custom = scan_source(text, "x.ts", translation_functions={"i18n.t"})
    assert [candidate.key_path for candidate in custom] == ["nav.home"]


def test_scan_source_skips_multiline_and_whitespace_text():
    text = (
        "export const Card = () => (\n"
        "  <div>\n"
        "    First line\n"
        "    second line\n"
        "    <b>Bold</b>   \n"
        "  </div>\n"
        ");\n"
    )
    texts = [candidate.text for candidate in scan_source(text, "Card.jsx")]
    assert texts == ["Bold"]


def test_scan_is_stable_across_runs(tmp_path):
    _write(tmp_path, "src/Nav.tsx", NAV)
    _write(tmp_path, "src/Footer.jsx", "export default () => <footer>All rights reserved</footer>;\n")

    first = scan(tmp_path, [".tsx", ".jsx"], ["node_modules"])
    second = scan(tmp_path, [".tsx", ".jsx"], ["node_modules"])

    assert [candidate.id for candidate in first] == [candidate.id for candidate in second]
    assert len({candidate.id for candidate in first}) == len(first)
    assert [candidate.file for candidate in first][0] == "src/Footer.jsx"


def test_scan_honours_ignore_and_include_dirs(tmp_path):
    _write(tmp_path, "src/A.tsx", "export const A = () => <p>Alpha</p>;\n")
    _write(tmp_path, "lib/B.tsx", "export const B = () => <p>Beta</p>;\n")
    _write(tmp_path, "node_modules/pkg/C.tsx", "export const C = () => <p>Gamma</p>;\n")

    texts = [candidate.text for candidate in scan(tmp_path, [".tsx"], ["node_modules"])]
    assert texts == ["Beta", "Alpha"]

    only_src = scan(tmp_path, [".tsx"], ["node_modules"], include_dirs=["src"])
    assert [candidate.text for candidate in only_src] == ["Alpha"]


def test_scanner_records_failures_and_continues(tmp_path):
    _write(tmp_path, "Broken.tsx", "export const = <p>;\n")
    _write(tmp_path, "Good.tsx", "export const Good = () => <p>Fine</p>;\n")
    (tmp_path / "Binary.tsx").write_bytes(b"\xff\xfe\x00<p>")

    report = Scanner(root=tmp_path, extensions=[".tsx"], workers=2).run()

    assert report.files_scanned == 3
    assert [candidate.text for candidate in report.candidates] == ["Fine"]
    categories = {record.path: record.category for record in report.failures}
    assert categories == {"Broken.tsx": ErrorCategory.PARSE, "Binary.tsx": ErrorCategory.DECODE}


def test_scanner_aborts_after_max_failures(tmp_path):
    _write(tmp_path, "A.tsx", "export const = ;\n")
    _write(tmp_path, "B.tsx", "export const = ;\n")

    with pytest.raises(ScanAborted):
        Scanner(root=tmp_path, extensions=[".tsx"], max_failures=1).run()


def test_candidate_id_distinguishes_localized_tag():
    assert candidate_id("a", "f", 1, 0, True) != candidate_id("a", "f", 1, 0, False)


def test_scan_source_keeps_text_with_bare_ampersands():
    text = (
        "export const Footer = () => (\n"
        "  <footer>\n"
        "    <a>Privacy</a>\n"
        "    <a>Terms & Conditions</a>\n"
        "    <p>AT&T</p>\n"
        "  </footer>\n"
        ");\n"
    )
    candidates = scan_source(text, "Footer.tsx")

    assert [candidate.text for candidate in candidates] == ["Privacy", "Terms & Conditions", "AT&T"]
    terms = candidates[1]
    assert (terms.line, terms.column) == position_of(text, "Terms & Conditions")


def test_scanner_records_unexpected_errors_and_continues(tmp_path, monkeypatch):
    _write(tmp_path, "Odd.tsx", "export const Odd = () => <p>Odd</p>;\n")
    _write(tmp_path, "Good.tsx", "export const Good = () => <p>Fine</p>;\n")
    original = scanner_module.scan_source

    def flaky(text, relative_path, translation_functions):
        if relative_path == "Odd.tsx":
            raise RuntimeError("grammar exploded")
        return original(text, relative_path, translation_functions)

    monkeypatch.setattr(scanner_module, "scan_source", flaky)
    report = Scanner(root=tmp_path, extensions=[".tsx"], workers=1).run()

    assert [candidate.text for candidate in report.candidates] == ["Fine"]
    (record,) = report.failures
    assert record.category is ErrorCategory.OTHER
    assert record.path == "Odd.tsx"
    assert "grammar exploded" in record.message
