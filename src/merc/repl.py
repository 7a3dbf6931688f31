"""Interactive read-eval-print loop for merc. Uses cmd as backend."""

import cmd
import logging
from typing import Dict, Optional

from termcolor import colored

from .errors import DiagnosticError, MercError
from .parser import Parser
from .runtime import Interpreter, Value, display

logger = logging.getLogger(__name__)


LOGO = r"""
  _ __ ___   ___ _ __ ___
 | '_ ` _ \ / _ \ '__/ __|
 | | | | | |  __/ | | (__
 |_| |_| |_|\___|_|  \___|
"""

COMMANDS = ("help", "clear", "env", "exit", "quit")


def _labelled(label: str, body: str, color: bool) -> str:
    if color:
        label = colored(label, "red", attrs=["bold"])
    return f"{label} {body}"


def format_error(error: MercError, color: bool = True) -> str:
    """Render an error as the REPL and CLI show it."""
    if isinstance(error, DiagnosticError):
        return _labelled("Parse error:", str(error), color)
    return _labelled("Error:", error.message, color)


def format_error_text(message: str, color: bool = True) -> str:
    return _labelled("Error:", message, color)


class Repl(cmd.Cmd):
    """merc interpreter shell.

    Each line gets a fresh parser and interpreter seeded with the bindings
    left by the previous lines.
    """
    prompt = colored(">>", "blue", attrs=["bold"]) + " "

    def __init__(self, variables: Optional[Dict[str, Value]] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.variables: Dict[str, Value] = dict(variables) if variables else {}
        self.intro = self.banner()

    @staticmethod
    def banner() -> str:
        return (
            colored(LOGO, "cyan")
            + "\n" + colored("Welcome to the Merc Interpreter", "yellow", attrs=["bold"])
            + "\n" + colored("Type 'exit' or 'quit' to leave the interpreter", attrs=["dark"])
            + "\n"
        )

    def _write(self, text: str = "") -> None:
        self.stdout.write(text + "\n")

    def onecmd(self, line):
        """Route bare command words to do_*, everything else to the interpreter."""
        word = line.strip()
        if not word:
            return self.emptyline()
        if word in COMMANDS:
            return super().onecmd(word)
        if word == "EOF":
            return self.do_EOF("")
        return self.default(line)

    def default(self, line):
        """Executes one line of merc source."""
        logger.debug("Evaluating line %r", line)
        interpreter = Interpreter(output=self.stdout)
        interpreter.replace_variables(self.variables)
        try:
            interpreter.run(
                Parser(line, "<stdin>"),
                report=lambda e: self._write(format_error(e)),
            )
        except KeyboardInterrupt:
            # bindings made by the interrupted line are dropped
            self._write(format_error_text("keyboard interrupt"))
            return
        self.variables = interpreter.snapshot()

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        return ""

    def do_help(self, arg):
        """Show the commands and a short language tour."""
        self._write(colored("Available commands:", "green"))
        self._write("  help  - Show this help message")
        self._write("  clear - Clear the screen")
        self._write("  exit  - Exit the interpreter")
        self._write("  env   - Show all defined variables")
        self._write()
        self._write("Language features:")
        self._write("  let x = <expression>  - Define a variable")
        self._write("  func name(args) { }  - Define a function")
        self._write("  if <cond> { } else { }  - Conditional")
        self._write("  while <cond> { }  - Loop")
        self._write("  1 + 2 * 3  - Arithmetic")
        self._write("  \"hello\" + \" world\"  - String concatenation")
        self._write("  true and false  - Boolean operations")

    def do_clear(self, arg):
        """Clear the screen."""
        self.stdout.write("\x1b[2J\x1b[1;1H")
        self._write(self.banner())

    def do_env(self, arg):
        """Show all defined variables."""
        if not self.variables:
            self._write(colored("No variables defined", "yellow"))
            return
        self._write(colored("Current environment:", "green"))
        for name in sorted(self.variables):
            value = display(self.variables[name])
            self._write(f"  {colored(name, 'blue')} = {colored(value, 'yellow')}")

    def do_EOF(self, arg):
        """Exits interpreter."""
        self._write()
        return self.do_exit(arg)

    def do_exit(self, arg):
        """Exits interpreter."""
        self._write(colored("Goodbye!", "green"))
        return True

    do_quit = do_exit

    def run(self) -> None:
        """Loop until exit. Ctrl-C abandons the current line only."""
        while True:
            try:
                self.cmdloop()
                return
            except KeyboardInterrupt:
                self.intro = ""
                self._write()
                self._write(format_error_text("keyboard interrupt"))
