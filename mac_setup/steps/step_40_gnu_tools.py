from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step

logger = logging.getLogger(__name__)

FRAGMENT = "10-gnu-tools.zsh"

GNU_BIN = (
    "coreutils/libexec/gnubin",
    "findutils/libexec/gnubin",
    "gnu-sed/libexec/gnubin",
    "gnu-tar/libexec/gnubin",
    "grep/libexec/gnubin",
    "gawk/libexec/gnubin",
    "gnu-getopt/bin",
)

GNU_MAN = (
    "coreutils/libexec/gnuman",
    "findutils/libexec/gnuman",
    "gnu-sed/libexec/gnuman",
    "gnu-tar/libexec/gnuman",
    "grep/libexec/gnuman",
)


def render_gnu_tools(prefix: str) -> str:
    """Give Homebrew GNU utilities precedence over the macOS BSD variants."""
    paths = "\n".join(f"    {prefix}/opt/{p}" for p in GNU_BIN)
    manpaths = "\n".join(f"    {prefix}/opt/{p}" for p in GNU_MAN)
    return (
        "_gnu_paths=(\n"
        f"{paths}\n"
        ")\n"
        'for _p in "${_gnu_paths[@]}"; do\n'
        '    [[ -d "$_p" ]] || continue\n'
        '    case ":$PATH:" in\n'
        '        *:"$_p":*) ;;\n'
        '        *) PATH="$_p:$PATH" ;;\n'
        "    esac\n"
        "done\n"
        "unset _p _gnu_paths\n"
        "\n"
        "_gnu_manpaths=(\n"
        f"{manpaths}\n"
        ")\n"
        'for _mp in "${_gnu_manpaths[@]}"; do\n'
        '    [[ -d "$_mp" ]] || continue\n'
        '    case ":${MANPATH:-}:" in\n'
        '        *:"$_mp":*) ;;\n'
        '        *) MANPATH="$_mp:${MANPATH:-}" ;;\n'
        "    esac\n"
        "done\n"
        "unset _mp _gnu_manpaths\n"
        "export PATH MANPATH\n"
    )


class GnuToolsStep(Step):
    step_id = "gnu-tools-path"
    phase = "gnu"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        return ctx.fragments.is_current(FRAGMENT, render_gnu_tools(ctx.brew.prefix))

    def run(self, ctx: SetupContext) -> None:
        logger.info("Configuring GNU tool precedence")
        ctx.fragments.write_fragment(FRAGMENT, render_gnu_tools(ctx.brew.prefix))
