from __future__ import annotations

from realtime_service.client.platform import MAX_TOASTS, HeadlessPlatform, Toast


def test_toasts_are_recorded():
    platform = HeadlessPlatform()

    platform.show_toast(Toast(title="Hi", description="there"))

    assert list(platform.toasts) == [Toast(title="Hi", description="there")]


def test_toast_history_keeps_only_the_latest():
    platform = HeadlessPlatform()

    for i in range(MAX_TOASTS + 5):
        platform.show_toast(Toast(title=f"t{i}", description=""))

    assert len(platform.toasts) == MAX_TOASTS
    assert platform.toasts[0].title == "t5"
    assert platform.toasts[-1].title == f"t{MAX_TOASTS + 4}"


def test_clipboard_round_trip():
    platform = HeadlessPlatform()

    platform.write_clipboard("invite-code")

    assert platform.read_clipboard() == "invite-code"


def test_open_url_delegates_to_browser(monkeypatch):
    opened = []
    monkeypatch.setattr("webbrowser.open", opened.append)

    HeadlessPlatform().open_url("https://edupath.io")

    assert opened == ["https://edupath.io"]
