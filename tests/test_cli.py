from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskboard.cli import main


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, dict]:
    rc = main(list(argv))
    out = capsys.readouterr().out
    return rc, (json.loads(out) if out.strip() else {})


def test_create_move_and_board(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    base = ['--project-dir', str(tmp_path)]
    rc, a = _run(capsys, *base, 'task', 'create', 'A')
    assert rc == 0
    rc, b = _run(capsys, *base, 'task', 'create', 'B')
    rc, c = _run(capsys, *base, 'task', 'create', 'C', '--status', 'in progress')
    assert c['task']['status'] == 'IN_PROGRESS'

    rc, moved = _run(capsys, *base, 'task', 'move', c['task']['id'], 'TODO', '1')
    assert rc == 0
    assert moved['task']['position'] == 1500

    rc, board = _run(capsys, *base, 'board')
    assert [t['title'] for t in board['columns']['TODO']] == ['A', 'C', 'B']

    rc, listed = _run(capsys, *base, 'task', 'list', '--status', 'TODO')
    assert len(listed['tasks']) == 3


def test_errors_return_nonzero(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    base = ['--project-dir', str(tmp_path)]
    assert main([*base, 'task', 'move', 'missing', 'TODO', '0']) == 1
    assert 'not found' in capsys.readouterr().err

    _, a = _run(capsys, *base, 'task', 'create', 'A')
    assert main([*base, 'task', 'move', a['task']['id'], 'ARCHIVE', '0']) == 1
    assert main([*base, 'task', 'delete', a['task']['id']]) == 0
    assert main([*base, 'task', 'delete', a['task']['id']]) == 1
