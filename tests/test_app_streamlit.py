from __future__ import annotations

import io
from pathlib import Path

import streamlit as st
from streamlit.testing.v1 import AppTest

APP = str(Path(__file__).resolve().parent.parent / "app_streamlit.py")


def test_page_renders_inputs() -> None:
    at = AppTest.from_file(APP).run()

    assert not at.exception
    assert at.title[0].value == "🔍 CSV Reconcile by Key"
    assert [t.label for t in at.text_input] == [
        "Key columns (comma-separated)",
        "Ignore columns (comma-separated)",
    ]


def test_compare_without_uploads_warns() -> None:
    at = AppTest.from_file(APP).run()

    at.button[0].click().run()

    assert at.warning[0].value == "Please upload both files."


def _upload(name: str, data: bytes) -> io.BytesIO:
    buf = io.BytesIO(data)
    buf.name = name
    return buf


def test_compare_shows_metrics_and_table(monkeypatch) -> None:
    uploads = {
        "f1": _upload("left.csv", b"id,name,value\n1,x,10\n2,y,20\n"),
        "f2": _upload("right.csv", b"id,name,value\n1,x,11\n3,z,30\n"),
    }
    monkeypatch.setattr(st, "file_uploader", lambda label, type=None, key=None: uploads[key])

    at = AppTest.from_file(APP).run()
    at.text_input(key="keys").input("id").run()
    at.button[0].click().run()

    assert not at.exception
    assert [m.value for m in at.metric] == ["3", "1", "1", "1"]
    assert len(at.dataframe) == 1
    assert at.caption[0].value == "📊 Total differences: 3"


def test_compare_unknown_key_shows_error(monkeypatch) -> None:
    uploads = {
        "f1": _upload("left.csv", b"id,v\n1,a\n"),
        "f2": _upload("right.csv", b"id,v\n1,b\n"),
    }
    monkeypatch.setattr(st, "file_uploader", lambda label, type=None, key=None: uploads[key])

    at = AppTest.from_file(APP).run()
    at.text_input(key="keys").input("nope").run()
    at.button[0].click().run()

    assert "Key column 'nope' not found" in at.error[0].value
    assert len(at.metric) == 0
