"""Shell syntax rendering and hook snippets."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum


class ShellKind(StrEnum):
    """Shells with a supported hook."""

    BASH = "bash"
    ZSH = "zsh"


def quote(value: str) -> str:
    """Single-quote ``value`` for POSIX shells."""
    return "'" + value.replace("'", "'\\''") + "'"


class PosixRenderer:
    """Renders ``export``/``unset`` lines understood by bash and zsh."""

    def format_exports(self, shell: ShellKind, variables: Mapping[str, str]) -> str:
        return "".join(f"export {name}={quote(variables[name])}\n" for name in sorted(variables))

    def format_unsets(self, shell: ShellKind, names: Iterable[str]) -> str:
        return "".join(f"unset {name}\n" for name in sorted(set(names)))

    def render(self, shell: ShellKind, unset: Iterable[str], export: Mapping[str, str]) -> str:
        """Deactivations first, so a changed value is never unset after export."""
        return self.format_unsets(shell, unset) + self.format_exports(shell, export)


_ZSH_HOOK = """_autoenv_hook() {
  eval "$(AUTOENV_SHELL_PID=$$ command autoenv export zsh)"
}
autoenv() {
  case "$1" in
    load|clear)
      case " $* " in
        *" --help "*) command autoenv "$@" ;;
        *) eval "$(AUTOENV_SHELL_PID=$$ command autoenv "$@" --shell zsh)" ;;
      esac
      ;;
    *) command autoenv "$@" ;;
  esac
}
if [[ "${_autoenv_shell_pid:-}" != "$$" ]]; then
  _autoenv_shell_pid=$$
  eval "$(AUTOENV_SHELL_PID=$$ command autoenv clear --shell zsh 2>/dev/null)"
fi
typeset -ag chpwd_functions
if [[ -z "${chpwd_functions[(r)_autoenv_hook]+1}" ]]; then
  chpwd_functions=(_autoenv_hook $chpwd_functions)
fi
_autoenv_hook
"""

_BASH_HOOK = """_autoenv_hook() {
  local prev_exit=$?
  eval "$(AUTOENV_SHELL_PID=$$ command autoenv export bash)"
  return $prev_exit
}
autoenv() {
  case "$1" in
    load|clear)
      case " $* " in
        *" --help "*) command autoenv "$@" ;;
        *) eval "$(AUTOENV_SHELL_PID=$$ command autoenv "$@" --shell bash)" ;;
      esac
      ;;
    *) command autoenv "$@" ;;
  esac
}
if [[ "${_autoenv_shell_pid:-}" != "$$" ]]; then
  _autoenv_shell_pid=$$
  eval "$(AUTOENV_SHELL_PID=$$ command autoenv clear --shell bash 2>/dev/null)"
fi
if [[ ";${PROMPT_COMMAND[*]:-};" != *";_autoenv_hook;"* ]]; then
  PROMPT_COMMAND="_autoenv_hook${PROMPT_COMMAND:+;$PROMPT_COMMAND}"
fi
_autoenv_hook
"""

_HOOKS = {
    ShellKind.ZSH: _ZSH_HOOK,
    ShellKind.BASH: _BASH_HOOK,
}


def hook_script(shell: ShellKind) -> str:
    """Snippet to ``eval`` from the shell's rc file."""
    return _HOOKS[shell]
