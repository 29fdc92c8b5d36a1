"""
CommandRegistry - named commands accepted by the sampling service

Bounded Context: Command registration and dispatch
Responsibilities:
  - Map command names to handlers
  - Reject unknown commands with the list of known ones
  - Describe registered commands (help text)

Threading: register() takes a lock; lookups read a plain dict.
"""

from typing import Any, Callable, Dict, Optional, Set
import threading


class CommandNotAvailableError(Exception):
    """Raised when a command name has no registered handler"""
    pass


class CommandRegistry:
    """
    Registry of control commands.

    A handler is called with the full command payload when one is given,
    and with no arguments otherwise.

    Example:
        registry = CommandRegistry()
        registry.register('viewer_ready', service.mark_ready, "Viewer is listening")

        try:
            registry.execute('viewer_ready', {'command': 'viewer_ready'})
        except CommandNotAvailableError as e:
            print(f"Command not available: {e}")
    """

    def __init__(self):
        self._commands: Dict[str, Callable] = {}
        self._descriptions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, command: str, handler: Callable, description: str) -> None:
        """
        Register a handler under a command name.

        Args:
            command: Command name (lowercase, no spaces)
            handler: Callable run when the command arrives
            description: Human-readable description for help text

        Raises:
            ValueError: If the name is empty or already registered
        """
        if not command or command != command.strip().lower() or ' ' in command:
            raise ValueError(f"Invalid command name: {command!r}")

        with self._lock:
            if command in self._commands:
                raise ValueError(f"Command '{command}' already registered")

            self._commands[command] = handler
            self._descriptions[command] = description

    def execute(self, command: str, command_data: Optional[dict] = None) -> Any:
        """
        Run the handler registered for a command.

        Args:
            command: Command name
            command_data: Full JSON payload of the command (optional)

        Returns:
            Whatever the handler returns

        Raises:
            CommandNotAvailableError: If command not registered
        """
        handler = self._commands.get(command)
        if handler is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self.available_commands))}"
            )

        if command_data is not None:
            return handler(command_data)
        return handler()

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        """Snapshot of registered command names."""
        return set(self._commands.keys())

    def get_help(self) -> Dict[str, str]:
        """Command name → description (copy)."""
        return dict(self._descriptions)

    def count(self) -> int:
        return len(self._commands)
