# conftest.py - in-memory doubles for the sandbox backend, text stream and project files
import itertools
from typing import Dict, Iterable, List, Optional

import pytest

from helpers.file_manifest import build_manifest
from sandbox.base import CommandResult, SandboxHandle, SandboxProvider

WORKING_DIR = "/home/user/app"

_ids = itertools.count(1)


class FakeProvider(SandboxProvider):
    """Sandbox backend over a dict. Every primitive call is appended to ``calls``."""

    name = "fake"
    api_key_env = "FAKE_API_KEY"

    def __init__(
        self,
        files: Optional[Dict[str, str]] = None,
        fail_paths: Iterable[str] = (),
        install_result: Optional[CommandResult] = None,
        ready: bool = True,
    ):
        super().__init__(WORKING_DIR, 5173, startup_delay_ms=0, restart_delay_ms=0)
        self.fs: Dict[str, str] = {
            f"{WORKING_DIR}/{path}": content for path, content in (files or {}).items()
        }
        self.fail_paths = set(fail_paths)
        self.install_result = install_result or CommandResult(stdout="added 1 package")
        self.ready = ready
        self.calls: List[tuple] = []
        self.destroyed = False

    def connect(self) -> "FakeProvider":
        self._sandbox = object()
        self.handle = SandboxHandle(f"fake-{next(_ids)}", "https://5173-fake.sandbox.test", self.name)
        return self

    def project_files(self) -> Dict[str, str]:
        prefix = WORKING_DIR + "/"
        return {p[len(prefix):]: c for p, c in self.fs.items() if p.startswith(prefix)}

    async def _create_remote(self) -> SandboxHandle:
        self.calls.append(("create",))
        self.connect()
        return self.handle

    async def _connect_remote(self, sandbox_id: str) -> SandboxHandle:
        self.calls.append(("connect", sandbox_id))
        self._sandbox = object()
        return SandboxHandle(sandbox_id, "https://5173-fake.sandbox.test", self.name)

    async def _read_raw(self, path: str) -> str:
        self.calls.append(("read", path))
        if path in self.fail_paths or path not in self.fs:
            raise FileNotFoundError(path)
        return self.fs[path]

    async def _write_raw(self, path: str, content: str) -> None:
        self.calls.append(("write", path))
        if path in self.fail_paths:
            raise OSError(f"permission denied: {path}")
        self.fs[path] = content

    async def _exec_raw(self, command, cwd=None, timeout=None) -> CommandResult:
        self.calls.append(("exec", command))
        if command.startswith("find "):
            listing = "\n".join("./" + p for p in sorted(self.project_files()))
            return CommandResult(stdout=listing)
        return CommandResult(stdout="ok")

    async def _install_raw(self, packages: List[str]) -> CommandResult:
        self.calls.append(("install", tuple(packages)))
        return self.install_result

    async def _start_dev_server(self) -> None:
        self.calls.append(("start-dev",))

    async def _stop_dev_server(self) -> None:
        self.calls.append(("stop-dev",))

    async def _destroy_remote(self) -> None:
        self.calls.append(("destroy",))
        self.destroyed = True

    async def _probe_ready(self) -> bool:
        return self.ready

    def call_kinds(self) -> List[str]:
        return [c[0] for c in self.calls]


async def fake_chunks(chunks: Iterable[str], fail_after: Optional[int] = None):
    for i, chunk in enumerate(chunks):
        if fail_after is not None and i == fail_after:
            raise ConnectionError("stream dropped")
        yield chunk


def text_stream_of(chunks: Iterable[str], fail_after: Optional[int] = None):
    """A text-stream factory with the signature the generation graph expects."""
    chunks = list(chunks)
    seen = {}

    def factory(system_prompt: str, full_prompt: str, model: str):
        seen.update(system_prompt=system_prompt, full_prompt=full_prompt, model=model)
        return fake_chunks(chunks, fail_after)

    factory.seen = seen
    return factory


APP_FILES = {
    "src/main.jsx": (
        "import React from 'react'\n"
        "import ReactDOM from 'react-dom/client'\n"
        "import App from './App.jsx'\n"
        "import './index.css'\n\n"
        "ReactDOM.createRoot(document.getElementById('root')).render(<App />)\n"
    ),
    "src/App.jsx": (
        "import React from 'react'\n"
        "import Header from './components/Header'\n"
        "import Hero from './components/Hero'\n"
        "import Footer from './components/Footer'\n\n"
        "function App() {\n"
        "  return (\n"
        "    <div>\n"
        "      <Header />\n"
        "      <Hero />\n"
        "      <Footer />\n"
        "    </div>\n"
        "  )\n"
        "}\n\n"
        "export default App\n"
    ),
    "src/components/Header.jsx": (
        "import React, { useState } from 'react'\n\n"
        "function Header() {\n"
        "  const [open, setOpen] = useState(false)\n"
        "  return <header className=\"bg-white\"><nav>Acme</nav></header>\n"
        "}\n\n"
        "export default Header\n"
    ),
    "src/components/Hero.jsx": (
        "import React from 'react'\n\n"
        "export default function Hero() {\n"
        "  return <section className=\"py-20\"><h1>Build faster</h1><button>Get Started</button></section>\n"
        "}\n"
    ),
    "src/components/Footer.jsx": (
        "import React from 'react'\n\n"
        "const Footer = () => <footer className=\"text-sm\">(c) Acme</footer>\n\n"
        "export default Footer\n"
    ),
    "src/index.css": "@tailwind base;\n@tailwind components;\n@tailwind utilities;\n",
    "tailwind.config.js": "export default { content: ['./index.html', './src/**/*.{js,jsx}'] }\n",
    "package.json": '{"name": "app", "dependencies": {"react": "^18.2.0"}}\n',
}


@pytest.fixture
def app_files() -> Dict[str, str]:
    return dict(APP_FILES)


@pytest.fixture
def manifest(app_files):
    return build_manifest(app_files, working_dir=WORKING_DIR)


@pytest.fixture
def small_manifest():
    return build_manifest({
        "src/components/Header.jsx": APP_FILES["src/components/Header.jsx"],
        "src/App.jsx": "import React from 'react'\nimport Header from './components/Header'\n\n"
                       "function App() {\n  return <Header />\n}\n\nexport default App\n",
    })


@pytest.fixture
def provider():
    return FakeProvider(files=APP_FILES).connect()
