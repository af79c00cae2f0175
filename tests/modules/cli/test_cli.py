from __future__ import annotations

from decimal import Decimal

import pytest

from subtitle_translator import cli
from subtitle_translator.subtitles import load_subtitle_entries
from subtitle_translator.tasks import SqlTaskStore, SqlUserStore, Task, TaskStatus, User
from tests.helpers.subtitles import translate_blocks

PROMPT_MARKER = "The original SRT blocks are:\n"


class PromptEchoClient:
    """Answer subtitle prompts by prefixing each caption."""

    def __init__(self, reply: str | None = None) -> None:
        self.reply = reply
        self.prompts = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.reply is not None:
            return self.reply
        return translate_blocks(prompt.split(PROMPT_MARKER, 1)[1], prefix="DE")


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        cli.build_cli_parser().parse_args([])


def test_parser_reads_run_options():
    args = cli.build_cli_parser().parse_args(
        ["run", "clip.mp4", "--user-id", "u1", "--burn-subtitles", "--target-language", "German"]
    )

    assert args.command == "run"
    assert args.video == "clip.mp4"
    assert args.user_id == "u1"
    assert args.burn_subtitles is True
    assert args.target_language == "German"


def test_parser_rejects_invalid_amount():
    with pytest.raises(SystemExit):
        cli.build_cli_parser().parse_args(["top-up", "u1", "ten"])


def test_translate_command_writes_destination(srt_factory, tmp_path, monkeypatch):
    client = PromptEchoClient()
    monkeypatch.setattr(cli, "create_client", lambda settings: client)
    source = srt_factory(18)
    destination = tmp_path / "out" / "german.srt"

    exit_code = cli.run_cli(["translate", str(source), str(destination), "--target-language", "German"])

    assert exit_code == 0
    entries = load_subtitle_entries(destination)
    assert len(entries) == 18
    assert entries[0].content == "DE:Line 1"
    assert "written in German originally" in client.prompts[0]


def test_translate_command_reports_failures(srt_factory, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "create_client", lambda settings: PromptEchoClient(reply="garbage"))
    source = srt_factory(3)

    exit_code = cli.run_cli(["translate", str(source), str(tmp_path / "out.srt")])

    assert exit_code == 1
    assert "failed after" in capsys.readouterr().err
    assert not (tmp_path / "out.srt").exists()


def test_translate_text_command_prints_translation(monkeypatch, capsys):
    monkeypatch.setattr(cli, "create_client", lambda settings: PromptEchoClient(reply="Hallo Welt"))

    exit_code = cli.run_cli(["translate-text", "Hello world", "--target-language", "German"])

    assert exit_code == 0
    assert "Hallo Welt" in capsys.readouterr().out


def test_create_user_and_top_up(sqlite_database, capsys):
    assert cli.run_cli(["create-user", "alice", "--balance", "5", "--database-url", sqlite_database]) == 0
    output = capsys.readouterr().out
    user_id = output.strip().rsplit(" ", 1)[-1]

    assert cli.run_cli(["top-up", user_id, "2.50", "--database-url", sqlite_database]) == 0

    assert SqlUserStore().find_by_id(user_id).balance == Decimal("7.50")
    assert "7.50" in capsys.readouterr().out


def test_top_up_unknown_user_fails(sqlite_database, capsys):
    assert cli.run_cli(["top-up", "ghost", "1", "--database-url", sqlite_database]) == 1
    assert "not found" in capsys.readouterr().err


def test_status_prints_task_json(sqlite_database, capsys):
    SqlUserStore().insert(User(user_id="u1", username="alice", balance=Decimal("10")))
    task = Task(task_id="t1", user_id="u1", original_video_filename="clip.mp4")
    task.transition_to(TaskStatus.UPLOADED)
    SqlTaskStore().insert(task)

    assert cli.run_cli(["status", "t1", "--database-url", sqlite_database]) == 0

    output = capsys.readouterr().out
    assert '"status": "UPLOADED"' in output
    assert '"original_video_filename": "clip.mp4"' in output


def test_status_of_unknown_task_fails(sqlite_database):
    assert cli.run_cli(["status", "missing", "--database-url", sqlite_database]) == 1


class StubDispatcher:
    def __init__(self, final: Task) -> None:
        self.final = final
        self.shut_down = False

    def wait(self, task_id):
        return self.final

    def shutdown(self):
        self.shut_down = True


class StubTaskService:
    def __init__(self, dispatcher) -> None:
        self.dispatcher = dispatcher

    def create_task(self, user_id, video, **kwargs):
        return Task(task_id="t1", user_id=user_id, status=TaskStatus.UPLOADED)


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (TaskStatus.TRANSLATED, 0),
        (TaskStatus.COMPLETED, 0),
        (TaskStatus.CANCELLED, 1),
        (TaskStatus.FAILED, 1),
    ],
)
def test_run_exit_code_follows_final_status(monkeypatch, capsys, status, expected):
    final = Task(
        task_id="t1",
        user_id="u1",
        status=status,
        error_message="translation failed: boom" if status is TaskStatus.FAILED else None,
    )
    dispatcher = StubDispatcher(final)
    monkeypatch.setattr(
        cli, "_task_service", lambda settings, with_dispatcher: StubTaskService(dispatcher)
    )

    exit_code = cli.run_cli(["run", "clip.mp4", "--user-id", "u1"])

    assert exit_code == expected
    assert dispatcher.shut_down
    assert f'"status": "{status.value}"' in capsys.readouterr().out


def test_run_without_dispatcher_fails_cleanly(monkeypatch, capsys):
    monkeypatch.setattr(
        cli, "_task_service", lambda settings, with_dispatcher: StubTaskService(None)
    )

    assert cli.run_cli(["run", "clip.mp4", "--user-id", "u1"]) == 1
    assert "No dispatcher" in capsys.readouterr().err
