"""Shared fixtures: small JavaScript/TypeScript projects on disk."""

import os
from pathlib import Path

import pytest

ENGINE_TS = """\
import { EventEmitter } from 'events';

export class Engine extends EventEmitter {
  start(port: number) {
    console.log('starting engine on', port);
    this.emit('start');
  }

  stop() {
    console.warn(`stopping ${this.name}`);
  }
}

export function shutdown(code) {
  console.error('shutdown', code);
}
"""

SERVER_JS = """\
const http = require('http');

function handle(req, res) {
  console.info('request', req.url);
  res.end('ok');
}

module.exports = { handle };
"""

PLAIN_TS = """\
export const VERSION = '1.0.0';

export function add(a: number, b: number) {
  return a + b;
}
"""

# Third call never closes its bracket and cannot be delimited.
PARTIAL_TS = """\
import { readFile } from 'fs';

export function load(path) {
  console.log('loading', path);
  console.debug('cache miss');
}

console.log('broken', readFile(]);
"""

BROKEN_ONLY_TS = """\
export const x = 1;
console.log('broken', wrap(]);
"""


def write(root: Path, relpath: str, text: str) -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path):
    """Project with one Core file (3 calls), one MCP file and a clean file."""
    write(tmp_path, "src/core/engine.ts", ENGINE_TS)
    write(tmp_path, "src/mcp/server.js", SERVER_JS)
    write(tmp_path, "src/core/version.ts", PLAIN_TS)
    write(tmp_path, "node_modules/lib/index.js", "console.log('vendored');\n")
    return tmp_path


@pytest.fixture
def partial_project(tmp_path):
    """Project whose only file has one call site that cannot be delimited."""
    write(tmp_path, "src/core/loader.ts", PARTIAL_TS)
    return tmp_path


@pytest.fixture
def snapshot():
    """Read every candidate source file under a root into a dict."""

    def _snapshot(root: Path):
        return {
            p.relative_to(root).as_posix(): p.read_text(encoding="utf-8")
            for p in sorted(root.rglob("*"))
            if p.is_file() and ".console-migrator" not in p.parts
        }

    return _snapshot


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory, monkeypatch):
    """No user-level config file and no CONSOLE_MIGRATOR_* variables."""
    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))
    for key in list(os.environ):
        if key.startswith("CONSOLE_MIGRATOR_"):
            monkeypatch.delenv(key)
