"""CLI interface for LeetMentor"""

import sys
import time
import threading
import argparse
import logging
import textwrap
from pathlib import Path
from typing import Optional
from colorama import init, Fore, Style

from .conversation import ChatTurn, ChatView, ConversationManager
from .gateway import ModelGateway
from .page import PageLifecycle, StaticPage
from .storage import Storage
from . import __version__, __author__, config

# Initialize colorama for Windows support
init(autoreset=True)

logger = logging.getLogger(__name__)


class TerminalView(ChatView):
    """Renders the mentor chat to the terminal"""

    def __init__(self, typewriter: bool = True):
        self.typewriter = typewriter
        self._thinking: Optional[threading.Event] = None
        self._indicator: Optional[threading.Thread] = None
        self.badge = 0
        self.unread = False

    def _reveal(self, line: str):
        """Print a reply line a word at a time"""
        sys.stdout.write(Fore.WHITE)
        for i, word in enumerate(line.split(' ')):
            sys.stdout.write(word if i == 0 else ' ' + word)
            sys.stdout.flush()
            time.sleep(config.CLI_WORD_DELAY)
        sys.stdout.write(Style.RESET_ALL + '\n')
        sys.stdout.flush()

    def show_turn(self, turn: ChatTurn):
        if turn.role == 'user':
            print(f"{Fore.LIGHTMAGENTA_EX}  You › {Style.RESET_ALL}{turn.text}")
            return
        sep = f"{Fore.GREEN}{'─' * 62}{Style.RESET_ALL}"
        print(sep)
        print(f"{Fore.GREEN + Style.BRIGHT}  {config.CLI_ASSISTANT}{Style.RESET_ALL}")
        for raw_line in turn.text.splitlines():
            chunks = textwrap.wrap(raw_line, width=config.CLI_WIDTH) if len(raw_line) > config.CLI_WIDTH else [raw_line]
            for line in chunks:
                if self.typewriter and line.strip():
                    self._reveal(line)
                else:
                    print(f"{Fore.WHITE}{line}{Style.RESET_ALL}")
        print(sep)

    def _animate_thinking(self, done: threading.Event):
        dots = 0
        while not done.wait(config.CLI_THINKING_INTERVAL):
            dots = dots % 3 + 1
            sys.stdout.write(f"\r{Fore.CYAN}  {config.CLI_ASSISTANT} is thinking{'.' * dots:<3}{Style.RESET_ALL}")
            sys.stdout.flush()

    def show_loading(self):
        self.clear_loading()
        self._thinking = threading.Event()
        self._indicator = threading.Thread(target=self._animate_thinking,
                                           args=(self._thinking,), daemon=True)
        self._indicator.start()

    def clear_loading(self):
        if self._indicator is None:
            return
        self._thinking.set()
        self._indicator.join()
        self._thinking = self._indicator = None
        # carriage return, then erase to end of line
        sys.stdout.write('\r\033[K')
        sys.stdout.flush()

    def show_notice(self, text: str):
        print(f"\n{Fore.CYAN}  {text}{Style.RESET_ALL}\n")

    def show_error(self, text: str):
        print(f"\n{Fore.RED}  ✗  {text}{Style.RESET_ALL}\n")

    def clear(self):
        print(f"{Fore.MAGENTA}{'═' * 62}{Style.RESET_ALL}")

    def update_badge(self, count: int, unread: bool):
        self.badge = count
        self.unread = unread
        if unread:
            print(f"{Fore.YELLOW}  ● {count} review entr{'y' if count == 1 else 'ies'} "
                  f"(type 'reviews' to see them){Style.RESET_ALL}")


class MentorCLI:
    """Interactive CLI for the LeetCode mentor"""

    def __init__(self, gateway: ModelGateway = None, storage: Storage = None,
                 page: StaticPage = None, typewriter: bool = True):
        self.page = page or StaticPage()
        self.view = TerminalView(typewriter=typewriter)
        self.mentor = ConversationManager(
            gateway or ModelGateway(),
            storage or Storage(),
            self.page,
            view=self.view,
        )
        self.lifecycle = PageLifecycle(self.page.current_url)
        self.lifecycle.on_hook_ready(self.mentor.on_hook_ready)
        self.lifecycle.on_problem_changed(self.mentor.on_problem_changed)
        self.running = False

    def print_banner(self):
        W = 62
        print()
        print(f"{Fore.MAGENTA}╔{'═' * W}╗{Style.RESET_ALL}")
        print(f"{Fore.MAGENTA}║{Fore.CYAN + Style.BRIGHT}{'·  L e e t M e n t o r  ·':^{W}}{Style.RESET_ALL}{Fore.MAGENTA}║{Style.RESET_ALL}")
        print(f"{Fore.MAGENTA}║{Fore.YELLOW}{'Socratic mentor for LeetCode problems':^{W}}{Style.RESET_ALL}{Fore.MAGENTA}║{Style.RESET_ALL}")
        print(f"{Fore.MAGENTA}╚{'═' * W}╝{Style.RESET_ALL}")
        print()

    def print_help(self):
        bar = f"{Fore.CYAN}{'─' * 60}{Style.RESET_ALL}"
        print(f"\n{bar}")
        print(f"{Fore.CYAN + Style.BRIGHT}  Commands{Style.RESET_ALL}")
        print(bar)
        for cmd, desc in [
            ("open <url>",   "Switch to a problem page"),
            ("title <text>", "Set the problem title"),
            ("desc <file>",  "Load the problem description (HTML or text)"),
            ("code <file>",  "Load your current code from a file"),
            ("reviews",      "Show the review list"),
            ("solved",       "Show problems with a known topic"),
            ("settings",     "Show gateway settings"),
            ("reset",        "Clear all stored chats and reviews"),
            ("help",         "Show this help message"),
            ("quit",         "Exit the application"),
        ]:
            print(f"  {Fore.GREEN}{cmd:<14}{Style.RESET_ALL}{Fore.WHITE}{desc}{Style.RESET_ALL}")
        print(f"\n  Anything else is sent to the mentor.\n{bar}\n")

    def print_error(self, error: str):
        print(f"\n{Fore.RED}  ✗  {error}{Style.RESET_ALL}\n")

    def get_input(self) -> str:
        try:
            prompt = (
                f"{Fore.LIGHTMAGENTA_EX}  ╰─{Style.RESET_ALL}"
                f"{Fore.LIGHTMAGENTA_EX + Style.BRIGHT} {config.CLI_PROMPT} {Style.RESET_ALL}"
                f"{Fore.LIGHTMAGENTA_EX}›{Style.RESET_ALL} "
            )
            return input(prompt).strip()
        except (KeyboardInterrupt, EOFError):
            return "quit"

    def print_reviews(self):
        entries = self.mentor.recommender.review_catalog()
        if not entries:
            print(f"{Fore.CYAN}  Your review list is empty.{Style.RESET_ALL}\n")
            return
        for entry in entries:
            print(f"{Fore.YELLOW + Style.BRIGHT}  {entry.concept}{Style.RESET_ALL}"
                  f"{Fore.WHITE}  (from {entry.source}){Style.RESET_ALL}")
            for problem in entry.problems:
                print(f"    {Fore.GREEN}›{Style.RESET_ALL} {problem.title}  {Fore.BLUE}{problem.url}{Style.RESET_ALL}")
        print()
        self.mentor.mark_reviews_read()

    def print_solved(self):
        solved = self.mentor.recommender.solved.all()
        if not solved:
            print(f"{Fore.CYAN}  No problems recorded yet.{Style.RESET_ALL}\n")
            return
        for item in solved:
            print(f"  {Fore.GREEN}{item.get('title', '')}{Style.RESET_ALL}  {item.get('topic', '')}")
        print()

    def print_settings(self):
        gateway = self.mentor.gateway
        print(f"  {Fore.GREEN}Endpoint : {Style.RESET_ALL}{gateway.endpoint}")
        print(f"  {Fore.GREEN}Mode     : {Style.RESET_ALL}{gateway.mode}")
        print(f"  {Fore.GREEN}Model    : {Style.RESET_ALL}{gateway.model}")
        print(f"  {Fore.GREEN}API key  : {Style.RESET_ALL}{'set' if gateway.api_key else 'not set'}")
        print(f"  {Fore.GREEN}Storage  : {Style.RESET_ALL}{config.LOCAL_STORE_FILE}\n")

    def _read_file(self, path: str) -> str:
        return Path(path).expanduser().read_text(encoding='utf-8')

    def handle_command(self, command: str):
        """
        Handle special commands.
        Returns True to continue, False to exit, None if not a command.
        """
        cmd, _, arg = command.partition(' ')
        cmd, arg = cmd.lower(), arg.strip()

        if cmd in ('quit', 'exit', 'q'):
            print(f"\n{Fore.MAGENTA}  Good luck with your practice! 👋{Style.RESET_ALL}\n")
            return False

        if cmd == 'help':
            self.print_help()
            return True

        if cmd == 'open' and arg:
            self.page.open(arg)
            self.lifecycle.poll()
            return True

        if cmd == 'title' and arg:
            self.page.title = arg
            print(f"{Fore.GREEN}  ✓  Title set{Style.RESET_ALL}")
            return True

        if cmd in ('desc', 'code') and arg:
            try:
                content = self._read_file(arg)
            except OSError as e:
                self.print_error(f"Could not read {arg}: {e}")
                return True
            if cmd == 'desc':
                self.page.description = content
            else:
                self.page.code = content
            print(f"{Fore.GREEN}  ✓  Loaded {arg}{Style.RESET_ALL}")
            return True

        if cmd in ('reviews', 'review'):
            self.print_reviews()
            return True

        if cmd == 'solved':
            self.print_solved()
            return True

        if cmd in ('settings', 'options'):
            self.print_settings()
            return True

        if cmd == 'reset':
            confirm = input(
                f"{Fore.YELLOW}  Clear all stored chats and reviews? (yes/no): {Style.RESET_ALL}"
            ).lower()
            if confirm == 'yes':
                self.mentor.reset()
                print(f"{Fore.GREEN}  ✓  All mentor data cleared{Style.RESET_ALL}\n")
            else:
                print(f"{Fore.CYAN}  Cancelled.{Style.RESET_ALL}\n")
            return True

        return None  # Not a command

    def run(self):
        """Main CLI loop."""
        self.print_banner()
        self.print_help()
        self.lifecycle.poll()
        self.running = True

        while self.running:
            try:
                user_input = self.get_input()
                if not user_input:
                    continue

                result = self.handle_command(user_input)
                if result is False:
                    break
                if result is True:
                    continue

                self.lifecycle.poll()
                self.mentor.submit(user_input)

            except KeyboardInterrupt:
                print(f"\n{Fore.YELLOW}  Use 'quit' to exit.{Style.RESET_ALL}\n")
            except Exception as e:
                self.print_error(f"Unexpected error: {e}")
                logger.exception("Unexpected error in main loop")


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(
        prog="leetmentor",
        description="LeetMentor: Socratic chat mentor for LeetCode problems",
        epilog=f"Version: {__version__}  Author: {__author__}",
    )
    parser.add_argument("--version", "-v", action="version", version=f"LeetMentor v{__version__}")
    parser.add_argument("--url", help="Problem URL to open on start")
    parser.add_argument("--title", help="Problem title (defaults to one derived from the URL)")
    parser.add_argument("--description-file", help="File holding the problem description")
    parser.add_argument("--code-file", help="File holding your current code")
    parser.add_argument("--endpoint", help=f"Generation endpoint (default: {config.API_ENDPOINT})")
    parser.add_argument("--mode", choices=("proxy", "chat"), help="Wire format of the endpoint")
    parser.add_argument("--model", help="Model name for chat mode")
    parser.add_argument("--no-typewriter", action="store_true", help="Print replies at once")

    args = parser.parse_args(argv)

    try:
        page = StaticPage(url=args.url or "", title=args.title)
        if args.description_file:
            page.description = Path(args.description_file).read_text(encoding="utf-8")
        if args.code_file:
            page.code = Path(args.code_file).read_text(encoding="utf-8")
        gateway = ModelGateway(endpoint=args.endpoint, mode=args.mode, model=args.model)
        cli = MentorCLI(gateway=gateway, page=page, typewriter=not args.no_typewriter)
        cli.run()
    except Exception as e:
        print(f"{Fore.RED}Fatal error: {e}{Style.RESET_ALL}")
        logging.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    main()
