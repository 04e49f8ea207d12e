from dataclasses import dataclass, field

import pytest

from devlb.dashboard import (
    QUIT_MSG,
    KeyMsg,
    Model,
    StatusMsg,
    SwitchDoneMsg,
    TickMsg,
    WindowSizeMsg,
)


@dataclass
class Backend:
    port: int
    label: str = ""
    active: bool = False
    healthy: bool | None = None
    active_conns: int = 0
    bytes_in: int = 0
    bytes_out: int = 0
    last_error: str = ""


@dataclass
class Entry:
    service: str
    listen_port: int
    status: str = ""
    backends: list = field(default_factory=list)


@dataclass
class Response:
    entries: list


class FakeClient:
    def __init__(self, entries=None, err=None):
        self.entries = entries or []
        self.err = err
        self.switch_calls = []

    def status(self):
        if self.err is not None:
            raise self.err
        return Response(self.entries)

    def switch(self, listen_port, label):
        self.switch_calls.append((listen_port, label))


def two_backend_entries():
    return [
        Entry(
            "api",
            3000,
            "active",
            [
                Backend(3001, "worktree-a", True, True),
                Backend(3002, "worktree-b", False, True),
            ],
        )
    ]


def loaded(client):
    model, _ = Model(client).update(StatusMsg(entries=client.entries))
    return model


def test_status_msg_populates_entries_and_rows():
    client = FakeClient(
        [Entry("api", 3000, "active", [Backend(3001, "a", True, True)])]
    )
    model, cmd = Model(client).update(StatusMsg(entries=client.entries))
    assert len(model.entries) == 1
    assert len(model.rows) == 1
    assert callable(cmd)


def test_cursor_move():
    model = loaded(FakeClient(two_backend_entries()))

    model2, _ = model.update(KeyMsg("down"))
    assert model2.cursor == 1
    model3, _ = model2.update(KeyMsg("down"))
    assert model3.cursor == 1
    model4, _ = model3.update(KeyMsg("up"))
    assert model4.cursor == 0
    model5, _ = model4.update(KeyMsg("up"))
    assert model5.cursor == 0
    assert model.cursor == 0


def test_vim_keys_move_cursor():
    model = loaded(FakeClient(two_backend_entries()))
    moved, _ = model.update(KeyMsg("j"))
    assert moved.cursor == 1
    back, _ = moved.update(KeyMsg("k"))
    assert back.cursor == 0


@pytest.mark.parametrize("key", ["q", "esc", "ctrl+c"])
def test_quit_keys(key):
    _, cmd = Model(FakeClient()).update(KeyMsg(key))
    assert cmd is not None
    assert cmd() is QUIT_MSG


def test_switch_sends_selected_label():
    client = FakeClient(two_backend_entries())
    model, _ = loaded(client).update(KeyMsg("down"))
    _, cmd = model.update(KeyMsg("s"))
    assert cmd is not None
    result = cmd()
    assert result == SwitchDoneMsg(err=None)
    assert client.switch_calls == [(3000, "worktree-b")]


def test_switch_on_idle_row_does_nothing():
    client = FakeClient([Entry("api", 3000, "idle")])
    _, cmd = loaded(client).update(KeyMsg("s"))
    assert cmd is None
    assert client.switch_calls == []


def test_status_error_sets_err():
    error = ConnectionError("connection refused")
    model, _ = Model(FakeClient(err=error)).update(StatusMsg(err=error))
    assert model.err is error


def test_successful_status_clears_err():
    client = FakeClient(two_backend_entries())
    failed, _ = Model(client).update(StatusMsg(err=RuntimeError("boom")))
    recovered, _ = failed.update(StatusMsg(entries=client.entries))
    assert recovered.err is None
    assert len(recovered.rows) == 2


def test_view_shows_error():
    model, _ = Model(FakeClient()).update(StatusMsg(err=RuntimeError("daemon not running")))
    view = model.view()
    assert "daemon not running" in view
    assert "No services" in view


def test_view_shows_backends():
    view = loaded(FakeClient(two_backend_entries())).view()
    assert "worktree-a" in view
    assert "devlb dashboard" in view


def test_refresh_fetches_status():
    client = FakeClient([Entry("api", 3000, "idle")])
    _, cmd = Model(client).update(KeyMsg("r"))
    assert cmd is not None
    msg = cmd()
    assert isinstance(msg, StatusMsg)
    assert msg.entries == client.entries


def test_refresh_reports_client_error():
    error = ConnectionError("connection refused")
    _, cmd = Model(FakeClient(err=error)).update(KeyMsg("r"))
    assert cmd().err is error


def test_tick_fetches_status():
    client = FakeClient([Entry("api", 3000, "idle")])
    _, cmd = Model(client).update(TickMsg(None))
    assert cmd().entries == client.entries


def test_switch_done_error_sets_err_and_refetches():
    client = FakeClient([Entry("api", 3000, "idle")])
    error = RuntimeError("switch failed")
    model, cmd = Model(client).update(SwitchDoneMsg(err=error))
    assert model.err is error
    assert cmd().entries == client.entries


def test_window_size_recorded():
    model, cmd = Model(FakeClient()).update(WindowSizeMsg(120, 40))
    assert (model.width, model.height) == (120, 40)
    assert cmd is None


def test_cursor_clamped_when_rows_shrink():
    client = FakeClient(two_backend_entries())
    model, _ = loaded(client).update(KeyMsg("down"))
    shrunk, _ = model.update(
        StatusMsg(entries=[Entry("api", 3000, "active", [Backend(3001, "a", True)])])
    )
    assert shrunk.cursor == 0


def test_init_batches_fetch_and_tick():
    client = FakeClient([Entry("api", 3000, "idle")])
    batch = Model(client).init()()
    assert len(batch.cmds) == 2
    assert batch.cmds[0]().entries == client.entries