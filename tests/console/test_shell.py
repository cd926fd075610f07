from __future__ import annotations

import click

from hanbase_cli.console.shell import ConsoleShell
from hanbase_cli.console.workbench import open_workbench
from hanbase_cli.shared.credentials import CredentialStore


class ScriptedPrompt:
    """Answers prompts from a list, then behaves like Ctrl-D."""

    def __init__(self, answers: list) -> None:
        self.answers = list(answers)
        self.labels: list[str] = []

    def __call__(self, text: str, **kwargs) -> str:
        self.labels.append(text)
        if not self.answers:
            raise click.Abort()
        answer = self.answers.pop(0)
        return answer() if callable(answer) else answer


def _seed(service) -> None:
    service.projects.append({"name": "My Shop", "slug": "my_shop"})
    service.columns[("my_shop", "posts")] = [
        {"name": "id", "type": "uuid", "nullable": "NO", "default": "gen_random_uuid()"},
        {"name": "title", "type": "text", "nullable": "YES", "default": None},
    ]
    service.rows[("my_shop", "posts")] = []


async def test_shell_browse_insert_and_query(config, logger, hanbase_service, capsys) -> None:
    _seed(hanbase_service)
    CredentialStore(config.session.token_path).save("admin-token")
    prompt = ScriptedPrompt(["insert", "hello", 'sql SELECT * FROM "my_shop"."posts"', "quit"])

    async with open_workbench(config, logger) as wb:
        await ConsoleShell(wb, logger=logger, prompt=prompt).run()
        assert wb.navigation.project == "my_shop"
        assert wb.navigation.table == "posts"

    assert prompt.labels[0] == "hanbase:my_shop:posts"
    assert "title (TEXT) [NULL]" in prompt.labels
    assert [row["title"] for row in hanbase_service.rows[("my_shop", "posts")]] == ["hello"]
    assert hanbase_service.queries[-1]["query"] == 'SELECT * FROM "my_shop"."posts"'
    assert "hello" in capsys.readouterr().out


async def test_shell_reports_errors_and_continues(config, logger, hanbase_service) -> None:
    _seed(hanbase_service)
    CredentialStore(config.session.token_path).save("admin-token")
    prompt = ScriptedPrompt(["open nope", "sql SELEC 1", "bogus", "quit"])

    async with open_workbench(config, logger) as wb:
        await ConsoleShell(wb, logger=logger, prompt=prompt).run()

    errors = logger.levels("error")
    assert any("nope" in message for message in errors)
    assert "syntax error" in errors
    assert any("Unknown command 'bogus'" in message for message in errors)


async def test_shell_prompts_login_when_token_rejected(config, logger, hanbase_service) -> None:
    _seed(hanbase_service)
    CredentialStore(config.session.token_path).save("revoked")
    prompt = ScriptedPrompt(["admin@example.com", "pw", "quit"])

    async with open_workbench(config, logger) as wb:
        await ConsoleShell(wb, logger=logger, prompt=prompt).run()
        assert wb.session.valid
        assert wb.navigation.project == "my_shop"

    assert prompt.labels[:2] == ["Email", "Password"]
    assert CredentialStore(config.session.token_path).load() == "admin-token"


async def test_shell_exits_on_end_of_input(config, logger, hanbase_service) -> None:
    _seed(hanbase_service)
    CredentialStore(config.session.token_path).save("admin-token")

    async with open_workbench(config, logger) as wb:
        await ConsoleShell(wb, logger=logger, prompt=ScriptedPrompt([])).run()

    assert not logger.levels("error")


async def test_shell_keeps_working_after_token_rotates(config, logger, hanbase_service) -> None:
    _seed(hanbase_service)
    CredentialStore(config.session.token_path).save("admin-token")

    def rotate_then_refresh() -> str:
        hanbase_service.token = "rotated-token"
        return "refresh"

    prompt = ScriptedPrompt(
        [rotate_then_refresh, "admin@example.com", "pw", "refresh", "open posts", "insert", "hello", "quit"]
    )

    async with open_workbench(config, logger) as wb:
        await ConsoleShell(wb, logger=logger, prompt=prompt).run()
        assert wb.navigation.tables == ("posts",)
        assert wb.registry.known_tables("my_shop") == ("posts",)
        assert wb.navigation.view.error is None
        assert [row["title"] for row in wb.navigation.view.result.rows] == ["hello"]

    assert not logger.levels("error")
    assert logger.levels("warning")
    assert CredentialStore(config.session.token_path).load() == "rotated-token"
    assert [row["title"] for row in hanbase_service.rows[("my_shop", "posts")]] == ["hello"]


async def test_shell_create_selects_the_new_table(config, logger, hanbase_service, capsys) -> None:
    _seed(hanbase_service)
    CredentialStore(config.session.token_path).save("admin-token")
    prompt = ScriptedPrompt(["create Comments body:TEXT", "quit"])

    async with open_workbench(config, logger) as wb:
        await ConsoleShell(wb, logger=logger, prompt=prompt).run()
        assert wb.navigation.tables == ("posts", "comments")
        assert wb.navigation.table == "comments"
        assert [column.name for column in wb.navigation.view.columns] == ["id", "body"]

    assert hanbase_service.queries[-2]["query"].startswith('CREATE TABLE "my_shop"."comments" (')
    assert prompt.labels[-1] == "hanbase:my_shop:comments"
    assert "Table 'comments' created." in logger.levels("success")
    assert "* comments" in capsys.readouterr().out


async def test_shell_use_switches_project_and_table_selection(config, logger, hanbase_service, capsys) -> None:
    _seed(hanbase_service)
    hanbase_service.projects.append({"name": "Blog", "slug": "blog"})
    CredentialStore(config.session.token_path).save("admin-token")
    prompt = ScriptedPrompt(["use blog", "describe", "tables", "use my_shop", "describe", "refresh", "quit"])

    async with open_workbench(config, logger) as wb:
        await ConsoleShell(wb, logger=logger, prompt=prompt).run()
        assert wb.navigation.project == "my_shop"
        assert wb.navigation.table == "posts"

    assert "hanbase:blog" in prompt.labels
    assert prompt.labels[-1] == "hanbase:my_shop:posts"
    assert logger.levels("error") == ["No table selected. Run 'open TABLE' first."]
    out = capsys.readouterr().out
    assert "No tables in blog." in out
    assert "title" in out
