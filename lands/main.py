"""Main entry point - console REPL for managing lands."""

from __future__ import annotations
import sys
import json
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory

from lands.config import LandSettings
from lands.models.events import Event, EventType
from lands.models.land import LandRecord
from lands.models.permissions import LandPermission
from lands.systems.event_log import EventLog
from lands.systems.land_manager import LandManager
from lands.systems.selection import SelectionManager
from lands.tools.handlers import LandCommandHandlers


console = Console()

SAVE_VERSION = 1


class Session:
    """Console session: engine, selections, audit log and the acting player."""

    def __init__(self, settings: Optional[LandSettings] = None):
        self.settings = settings or LandSettings.from_env()
        self.manager = LandManager(self.settings)
        self.selections = SelectionManager()
        self.event_log = EventLog()
        self.handlers = LandCommandHandlers(self.manager, self.selections, self.event_log)
        self.player = "player"
        self._save_dir = Path(self.settings.save_dir)

    def save(self, filename: str = "quicksave") -> bool:
        """Save every land and the event log as JSON."""
        self._save_dir.mkdir(parents=True, exist_ok=True)
        save_data = {
            "version": SAVE_VERSION,
            "lands": [r.model_dump(mode="json") for r in self.manager.export_records()],
            "events": self.event_log.export(),
        }

        filepath = self._save_dir / f"{filename}.json"
        with open(filepath, 'w') as f:
            json.dump(save_data, f, indent=2)

        self.event_log.add(Event(
            event_type=EventType.SAVE,
            description=f"Saved to {filepath}",
            actor=self.player,
        ))
        console.print(f"[green]Saved to {filepath}[/green]")
        return True

    def load(self, filename: str = "quicksave") -> bool:
        """Load a saved session, replacing all lands."""
        filepath = self._save_dir / f"{filename}.json"

        if not filepath.exists():
            console.print(f"[red]Save file not found: {filepath}[/red]")
            return False

        with open(filepath, 'r') as f:
            save_data = json.load(f)

        version = save_data.get("version")
        if version != SAVE_VERSION:
            console.print(f"[red]Unsupported save version: {version}[/red]")
            return False

        self.manager.import_records(LandRecord(**data) for data in save_data.get("lands", []))
        self.event_log.import_events(save_data.get("events", []))
        self.event_log.add(Event(
            event_type=EventType.LOAD,
            description=f"Loaded {filepath}",
            actor=self.player,
        ))
        console.print(f"[green]Loaded {filepath}[/green]")
        return True

    def list_saves(self) -> list[str]:
        if not self._save_dir.exists():
            return []
        return sorted(f.stem for f in self._save_dir.glob("*.json"))


def print_help() -> None:
    """Print help information."""
    table = Table(title="Commands", show_header=True, header_style="bold magenta")
    table.add_column("Command", style="cyan")
    table.add_column("Description")

    commands = [
        ("as <player>", "Act as another player"),
        ("pos1 <x> <y> <z>", "Set the first selection corner"),
        ("pos2 <x> <y> <z>", "Set the second selection corner"),
        ("create <name>", "Create a land from the selection"),
        ("delete <name>", "Delete one of your lands"),
        ("select <name>", "Select a land for the commands below"),
        ("deselect", "Clear the selected land"),
        ("claim", "Add the selection to the selected land"),
        ("unclaim", "Remove the selection from the selected land (asks to confirm)"),
        ("trust <player> [role]", "Add a member (default role: member)"),
        ("untrust <player>", "Remove a member"),
        ("assign <player> <role>", "Change a member's role"),
        ("role list", "Show the roles of the selected land"),
        ("role create <name> <perm...>", "Create a role"),
        ("role set <name> <perm...>", "Replace a role's permissions"),
        ("role delete <name>", "Delete a role"),
        ("check <player> <land> <perm>", "Check a permission"),
        ("where <x> <y> <z>", "Which land covers a block"),
        ("lands [owner]", "List lands"),
        ("info [land]", "Show land details"),
        ("events [n]", "Show recent events (default: 10)"),
        ("save [name]", "Save (default: quicksave)"),
        ("load [name]", "Load (default: quicksave)"),
        ("saves", "List available saves"),
        ("help", "Show this help"),
        ("quit", "Exit"),
    ]

    for cmd, desc in commands:
        table.add_row(cmd, desc)

    console.print(table)
    console.print(
        "[dim]Permissions: " + ", ".join(p.value for p in LandPermission) + "[/dim]"
    )


def report(result: dict[str, Any], success_text: Optional[str] = None) -> None:
    """Print a handler result."""
    if result.get("success"):
        text = success_text or result.get("message")
        if text:
            console.print(f"[green]{text}[/green]")
        return

    console.print(f"[red]{result.get('error', 'Command failed')}[/red]")
    if result.get("suggestion"):
        console.print(f"[yellow]Did you mean '{result['suggestion']}'?[/yellow]")


def parse_position(parts: list[str]) -> Optional[tuple[int, int, int]]:
    if len(parts) != 3:
        console.print("[red]Expected three integer coordinates[/red]")
        return None
    try:
        x, y, z = (int(p) for p in parts)
    except ValueError:
        console.print("[red]Coordinates must be integers[/red]")
        return None
    return x, y, z


def handle_corner(session: Session, which: int, parts: list[str]) -> None:
    position = parse_position(parts[1:])
    if position is None:
        return
    result = session.handlers.set_corner(session.player, which, position)
    console.print(f"[cyan]pos{which}[/cyan] set to {position}")
    if "selection" in result:
        sel = result["selection"]
        console.print(f"[dim]Selection: {tuple(sel['corner1'])} -> {tuple(sel['corner2'])} "
                      f"({sel['volume']} blocks)[/dim]")


def handle_unclaim(session: Session, prompt: PromptSession) -> None:
    """Propose an unclaim, show what would be lost, and ask to confirm."""
    result = session.handlers.propose_unclaim(session.player)
    if not result.get("success"):
        report(result)
        return

    border = "red" if result["splits_land"] else "yellow"
    console.print(Panel(result["summary"], title="Unclaim", border_style=border))
    if result["splits_land"]:
        console.print("[bold red]The land would be split; disconnected parts are relinquished.[/bold red]")

    try:
        answer = prompt.prompt("Confirm unclaim? [y/N] ")
    except (KeyboardInterrupt, EOFError):
        answer = ""

    if answer.strip().lower() in ("y", "yes"):
        report(session.handlers.confirm_unclaim(session.player))
    else:
        session.handlers.cancel_unclaim(session.player)
        console.print("[dim]Unclaim cancelled[/dim]")


def handle_role(session: Session, parts: list[str]) -> None:
    if len(parts) < 2:
        console.print("[red]Usage: role <list|create|set|delete> ...[/red]")
        return

    sub = parts[1].lower()
    player = session.player

    if sub == "list":
        land = session.manager.get_selected_land_for_player(player)
        if land is None:
            console.print("[red]No land selected[/red]")
            return
        table = Table(title=f"Roles of {land.name}", header_style="bold magenta")
        table.add_column("Role", style="cyan")
        table.add_column("Weight", justify="right")
        table.add_column("Permissions")
        for name in sorted(land.roles):
            role = land.roles[name]
            perms = ", ".join(sorted(p.value for p in role.permissions)) or "-"
            table.add_row(name, str(role.weight), perms)
        console.print(table)
    elif sub == "create" and len(parts) >= 3:
        report(session.handlers.create_role(player, parts[2], parts[3:]), f"Role '{parts[2]}' created")
    elif sub == "set" and len(parts) >= 3:
        report(session.handlers.set_role_permissions(player, parts[2], parts[3:]), f"Role '{parts[2]}' updated")
    elif sub == "delete" and len(parts) == 3:
        report(session.handlers.delete_role(player, parts[2]))
    else:
        console.print("[red]Usage: role <list|create|set|delete> ...[/red]")


def handle_lands(session: Session, parts: list[str]) -> None:
    owner = parts[1] if len(parts) > 1 else None
    result = session.handlers.list_lands(owner)
    if not result["lands"]:
        console.print("[dim]No lands[/dim]")
        return

    table = Table(title="Lands", header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Owner")
    table.add_column("Volume", justify="right")
    table.add_column("Members", justify="right")
    for land in result["lands"]:
        table.add_row(land["name"], land["owner"], str(land["volume"]), str(land["members"]))
    console.print(table)


def handle_info(session: Session, parts: list[str]) -> None:
    if len(parts) > 1:
        name = " ".join(parts[1:])
    else:
        land = session.manager.get_selected_land_for_player(session.player)
        if land is None:
            console.print("[red]Usage: info <land> (or select a land first)[/red]")
            return
        name = land.name

    result = session.handlers.land_info(name)
    if not result.get("success"):
        report(result)
        return
    border = "cyan" if result["contiguous"] else "red"
    console.print(Panel(result["summary"], title=name, border_style=border))


def handle_events(session: Session, parts: list[str]) -> None:
    """Show recent events."""
    count = 10
    if len(parts) > 1:
        try:
            count = int(parts[1])
        except ValueError:
            pass
    console.print(session.event_log.summary(count))


def dispatch(session: Session, prompt: PromptSession, command: str) -> bool:
    """Run one console command. Returns False when the session should end."""
    parts = command.strip().split()
    cmd = parts[0].lower()
    player = session.player

    if cmd in ("quit", "exit"):
        return False
    elif cmd == "help":
        print_help()
    elif cmd == "as" and len(parts) == 2:
        session.player = parts[1]
        console.print(f"[dim]Now acting as {session.player}[/dim]")
    elif cmd == "pos1":
        handle_corner(session, 1, parts)
    elif cmd == "pos2":
        handle_corner(session, 2, parts)
    elif cmd == "create" and len(parts) >= 2:
        report(session.handlers.create_land(player, " ".join(parts[1:])))
    elif cmd == "delete" and len(parts) >= 2:
        report(session.handlers.delete_land(player, " ".join(parts[1:])))
    elif cmd == "select" and len(parts) >= 2:
        result = session.handlers.select_land(player, " ".join(parts[1:]))
        report(result, f"Selected {result.get('name')}")
    elif cmd == "deselect":
        report(session.handlers.clear_selection(player), "Selection cleared")
    elif cmd == "claim":
        report(session.handlers.claim(player))
    elif cmd == "unclaim":
        handle_unclaim(session, prompt)
    elif cmd == "trust" and len(parts) in (2, 3):
        role = parts[2] if len(parts) == 3 else "member"
        report(session.handlers.trust(player, parts[1], role))
    elif cmd == "untrust" and len(parts) == 2:
        report(session.handlers.untrust(player, parts[1]))
    elif cmd == "assign" and len(parts) == 3:
        report(session.handlers.assign_role(player, parts[1], parts[2]))
    elif cmd == "role":
        handle_role(session, parts)
    elif cmd == "check" and len(parts) == 4:
        result = session.handlers.check_permission(parts[1], parts[2], parts[3])
        if result.get("success"):
            verdict = "[green]allowed[/green]" if result["allowed"] else "[red]denied[/red]"
            console.print(f"{parts[1]} ({result['role'] or 'not a member'}): {parts[3]} {verdict}")
        else:
            report(result)
    elif cmd == "where":
        position = parse_position(parts[1:])
        if position is not None:
            result = session.handlers.land_at(position)
            if result["land"]:
                console.print(f"{position} is in [cyan]{result['land']}[/cyan] (owner {result['owner']})")
            else:
                console.print(f"[dim]{position} is wilderness[/dim]")
    elif cmd == "lands":
        handle_lands(session, parts)
    elif cmd == "info":
        handle_info(session, parts)
    elif cmd == "events":
        handle_events(session, parts)
    elif cmd == "save":
        session.save(parts[1] if len(parts) > 1 else "quicksave")
    elif cmd == "load":
        session.load(parts[1] if len(parts) > 1 else "quicksave")
    elif cmd == "saves":
        saves = session.list_saves()
        if saves:
            console.print("[bold]Available saves:[/bold]")
            for s in saves:
                console.print(f"  • {s}")
        else:
            console.print("[dim]No saves found[/dim]")
    else:
        console.print(f"[red]Unknown or malformed command: {command.strip()}[/red] [dim](try 'help')[/dim]")

    return True


def main():
    """Main entry point."""
    session = Session()

    console.print(Panel(
        "[bold magenta]Voxel Lands[/bold magenta]\n"
        "[dim]Claim, share and govern cuboid territory[/dim]",
        border_style="magenta",
    ))

    history_dir = Path(session.settings.history_dir)
    history_dir.mkdir(parents=True, exist_ok=True)
    prompt = PromptSession(
        history=FileHistory(str(history_dir / "command_history")),
        auto_suggest=AutoSuggestFromHistory(),
    )

    if len(sys.argv) > 1:
        if sys.argv[1] == "load" and len(sys.argv) > 2:
            if not session.load(sys.argv[2]):
                sys.exit(1)
        else:
            console.print("[yellow]Usage: python -m lands.main [load <savename>][/yellow]")
            sys.exit(1)

    console.print("\n[dim]Type 'help' for commands[/dim]\n")

    while True:
        try:
            command = prompt.prompt(f"[{session.player}] > ")

            if not command.strip():
                continue

            if not dispatch(session, prompt, command):
                console.print("[dim]Goodbye.[/dim]")
                break

        except KeyboardInterrupt:
            console.print("\n[dim]Type 'quit' to exit[/dim]")

        except EOFError:
            console.print("\n[dim]Goodbye.[/dim]")
            break

        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
