"""Tests for the host surface: events, workspace and diagnostics."""

from __future__ import annotations

from pathlib import Path

import pytest

from lspbridge.host import (
    ActivationContext,
    DiagnosticCollection,
    HostEventKind,
    HostEvents,
    Workspace,
)
from lspbridge.protocol.types import FileChangeType


class TestHostEvents:
    def test_subscribe_and_emit(self) -> None:
        events = HostEvents()
        seen: list[object] = []
        events.subscribe(HostEventKind.DOCUMENT_OPENED, seen.append)

        events.emit(HostEventKind.DOCUMENT_OPENED, "doc")
        events.emit(HostEventKind.DOCUMENT_CLOSED, "other")

        assert seen == ["doc"]

    def test_dispose_unsubscribes_once(self) -> None:
        events = HostEvents()
        seen: list[object] = []
        subscription = events.subscribe(HostEventKind.FILE_CHANGED, seen.append)

        subscription.dispose()
        subscription.dispose()
        events.emit(HostEventKind.FILE_CHANGED, "x")

        assert seen == []
        assert subscription.disposed
        assert events.handler_count(HostEventKind.FILE_CHANGED) == 0

    def test_failing_handler_does_not_stop_others(self) -> None:
        events = HostEvents()
        seen: list[object] = []

        def boom(_: object) -> None:
            raise RuntimeError("boom")

        events.subscribe(HostEventKind.DOCUMENT_SAVED, boom)
        events.subscribe(HostEventKind.DOCUMENT_SAVED, seen.append)
        events.emit(HostEventKind.DOCUMENT_SAVED, "doc")

        assert seen == ["doc"]


class TestWorkspace:
    def test_document_lifecycle_events(self) -> None:
        workspace = Workspace()
        kinds: list[HostEventKind] = []
        for kind in HostEventKind:
            workspace.events.subscribe(kind, lambda _, kind=kind: kinds.append(kind))

        workspace.open_document("file:///a.html", "html", "<p>")
        changed = workspace.change_document("file:///a.html", "<p></p>")
        workspace.save_document("file:///a.html")
        workspace.close_document("file:///a.html")

        assert changed.version == 2
        assert kinds == [
            HostEventKind.DOCUMENT_OPENED,
            HostEventKind.DOCUMENT_CHANGED,
            HostEventKind.DOCUMENT_SAVED,
            HostEventKind.DOCUMENT_CLOSED,
        ]
        assert workspace.documents == []

    def test_change_unknown_document_raises(self) -> None:
        with pytest.raises(KeyError, match="Document not open"):
            Workspace().change_document("file:///missing.html", "")

    def test_file_changed_event(self, tmp_path: Path) -> None:
        workspace = Workspace(root=tmp_path)
        events: list[object] = []
        workspace.events.subscribe(HostEventKind.FILE_CHANGED, events.append)

        workspace.file_changed(tmp_path / ".clientrc", FileChangeType.CREATED)

        (event,) = events
        assert event.change_type is FileChangeType.CREATED
        assert event.uri == (tmp_path / ".clientrc").as_uri()


class TestDiagnosticCollection:
    def test_set_get_clear(self) -> None:
        diagnostics = DiagnosticCollection()
        diagnostics.set("file:///a", [{"message": "x"}])

        assert diagnostics.get("file:///a") == [{"message": "x"}]
        assert "file:///a" in diagnostics
        diagnostics.clear()
        assert len(diagnostics) == 0

    def test_empty_list_removes_entry(self) -> None:
        diagnostics = DiagnosticCollection()
        diagnostics.set("file:///a", [{"message": "x"}])
        diagnostics.set("file:///a", [])
        assert "file:///a" not in diagnostics


class TestActivationContext:
    def test_as_absolute_path(self, tmp_path: Path) -> None:
        context = ActivationContext(install_root=tmp_path)
        assert context.as_absolute_path("bin/server") == tmp_path / "bin" / "server"

    def test_report_error_uses_reporter(self, tmp_path: Path) -> None:
        errors: list[str] = []
        context = ActivationContext(install_root=tmp_path, error_reporter=errors.append)
        context.report_error("bad")
        assert errors == ["bad"]

    def test_dispose_clears_subscriptions(self, tmp_path: Path) -> None:
        context = ActivationContext(install_root=tmp_path)
        context.subscriptions.append(
            context.events.subscribe(HostEventKind.DOCUMENT_OPENED, lambda _: None)
        )
        context.dispose()
        assert context.subscriptions == []
        assert context.events.handler_count(HostEventKind.DOCUMENT_OPENED) == 0
