from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


Runner = Callable[..., CmdResult]


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def subprocess_runner(
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    interactive: bool = False,
) -> CmdResult:
    """Default runner: a real subprocess.

    Interactive commands inherit the terminal instead of being captured.
    A missing executable is reported as exit code 127, like a shell would.
    """

    argv_list = list(argv)
    full_env = dict(os.environ, **(env or {}))
    try:
        if interactive:
            p = subprocess.run(argv_list, cwd=cwd, env=full_env)
            return CmdResult(argv=argv_list, returncode=p.returncode, stdout="", stderr="")
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=full_env,
        )
    except FileNotFoundError as e:
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))
    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    interactive: bool = False,
    runner: Runner | None = None,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - Captured stdout/stderr are traced at DEBUG (--verbose).
    - check=True raises RuntimeError on a non-zero exit.
    """

    argv_list = list(argv)
    logger.info("CMD %s", _fmt_argv(argv_list))

    r = (runner or subprocess_runner)(
        argv_list, env=env, cwd=cwd, input_text=input_text, interactive=interactive
    )

    if r.stdout:
        logger.debug("STDOUT %s", r.stdout.strip())
    if r.stderr:
        logger.debug("STDERR %s", r.stderr.strip())

    if check and r.returncode != 0:
        raise RuntimeError(f"Command failed ({r.returncode}): {_fmt_argv(argv_list)}\n{r.stderr}")

    return r


class Executor:
    """The single seam every side effect goes through.

    In preview mode mutations are described (logged as ``DRY-RUN: ...`` and
    kept in ``planned``, in order) instead of performed. Read-only queries
    run in both modes so idempotency guards behave identically.
    """

    def __init__(
        self,
        *,
        preview: bool = False,
        runner: Optional[Runner] = None,
        sleep: Callable[[float], None] = time.sleep,
        prompt: Callable[[str], str] = input,
    ) -> None:
        self.preview = preview
        self.runner = runner or subprocess_runner
        self._sleep = sleep
        self._prompt = prompt
        self.planned: List[str] = []

    def _plan(self, description: str) -> None:
        self.planned.append(description)
        logger.info("DRY-RUN: %s", description)

    def query(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> CmdResult:
        """Run a read-only command. Never raises on a non-zero exit."""
        argv_list = list(argv)
        logger.debug("QUERY %s", _fmt_argv(argv_list))
        r = self.runner(argv_list, env=env, cwd=cwd, input_text=None, interactive=False)
        if r.stderr and r.returncode != 0:
            logger.debug("QUERY STDERR %s", r.stderr.strip())
        return r

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        input_text: str | None = None,
        interactive: bool = False,
    ) -> CmdResult:
        argv_list = list(argv)
        if self.preview:
            self._plan(_fmt_argv(argv_list))
            return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")
        return run_cmd(
            argv_list,
            check=check,
            env=env,
            cwd=cwd,
            input_text=input_text,
            interactive=interactive,
            runner=self.runner,
        )

    def mkdir(self, path: Path) -> None:
        if path.is_dir():
            return
        if self.preview:
            self._plan(f"mkdir -p {path}")
            return
        path.mkdir(parents=True, exist_ok=True)

    def write_text(self, path: Path, content: str) -> None:
        """Replace a file's content atomically (write temp file, then rename)."""
        if self.preview:
            self._plan(f"write {path}")
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
        logger.debug("Wrote %s", path)

    def append_text(self, path: Path, text: str) -> None:
        if self.preview:
            self._plan(f"append to {path}")
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(text)
        logger.debug("Appended to %s", path)

    def copy(self, src: Path, dst: Path) -> None:
        """Copy a file, or a directory tree, to ``dst``."""
        if self.preview:
            self._plan(f"copy {src} -> {dst}")
            return
        if src.is_dir():
            shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True)
        else:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dst)
        logger.debug("Copied %s -> %s", src, dst)

    def replace_tree(self, src: Path, dst: Path) -> None:
        """Replace directory ``dst`` wholesale with a copy of ``src``."""
        if self.preview:
            self._plan(f"replace {dst} with {src}")
            return
        if dst.is_dir() and not dst.is_symlink():
            shutil.rmtree(dst)
        elif dst.exists() or dst.is_symlink():
            dst.unlink()
        shutil.copytree(src, dst, symlinks=True)
        logger.debug("Replaced %s with %s", dst, src)

    def ask(self, question: str) -> str:
        if self.preview:
            self._plan(f"prompt: {question}")
            return f"<{question}>"
        return self._prompt(question).strip()

    def wait_until(
        self,
        predicate: Callable[[], bool],
        *,
        description: str,
        timeout_s: float,
        interval_s: float = 5.0,
    ) -> bool:
        """Poll ``predicate`` until it holds or ``timeout_s`` elapses."""
        if self.preview:
            self._plan(description)
            return True

        logger.info("Waiting: %s (timeout %ss)", description, int(timeout_s))
        deadline = time.monotonic() + timeout_s
        while True:
            if predicate():
                return True
            if time.monotonic() >= deadline:
                return False
            self._sleep(interval_s)
