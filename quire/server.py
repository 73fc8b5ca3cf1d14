"""Development server for Quire.

Serves the last good build over HTTP and reloads connected browsers when
a watched file changes:

- content/, layouts/, public/ and quire.yaml are watched with watchdog.
- Each change triggers a full rebuild into a staging directory, which
  replaces the served output only if the build succeeds.
- HTML responses get a small script that listens on a websocket for
  reload messages.

An invalid document or broken template prints the error and leaves the
previous build in place, so the browser keeps showing the last good page.

Key classes:
- DevServer: Builds, serves, watches and rebuilds a project.
- LiveReloadHub: Websocket endpoint that tells browsers to reload.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import (
    CONFIG_FILENAME,
    BuildError,
    ConfigError,
    SiteConfig,
    build_site,
    load_config,
)
from .schema import ContentError

RELOAD_SNIPPET = """
<script>
(() => {{
  const socket = new WebSocket('ws://' + location.hostname + ':{port}');
  socket.onmessage = (event) => {{
    if (JSON.parse(event.data || '{{}}').type === 'reload') location.reload();
  }};
}})();
</script>
"""

REBUILD_ERRORS = (ContentError, BuildError, ConfigError)


def resolve_ports(
    config: SiteConfig, http_port: int | None = None, ws_port: int | None = None
) -> tuple[int, int]:
    """Pick the HTTP and websocket ports.

    Command-line values win over quire.yaml. When only the HTTP port is
    given, the websocket listens on the next port up.
    """
    http = http_port or config.port
    if ws_port is not None:
        return http, ws_port
    if http_port is None and config.ws_port is not None:
        return http, config.ws_port
    return http, http + 1


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Static file handler that adds the reload snippet to HTML pages.

    Entry pages live at ``<slug>/index.html``, so directory requests are
    answered with their index or a 404; listings are never shown.
    """

    reload_script = RELOAD_SNIPPET.format(port=4001)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):
        return self._not_found()

    def _with_reload(self, html: str) -> str:
        head, marker, tail = html.rpartition("</body>")
        if not marker:
            return html + self.reload_script
        return f"{head}{self.reload_script}{marker}{tail}"

    def _respond_html(self, status: int, html: str) -> None:
        payload = self._with_reload(html).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def _not_found(self):
        page = Path(self.directory) / "404.html"
        if page.is_file():
            self._respond_html(404, page.read_text(encoding="utf-8"))
        else:
            self.send_error(404, "File not found")
        return None

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self._not_found()
        if target.suffix == ".html":
            self._respond_html(200, target.read_text(encoding="utf-8"))
            return None
        return super().send_head()


class LiveReloadHub:
    """Websocket endpoint that broadcasts reload messages.

    The hub runs its own event loop on a background thread; broadcast()
    is safe to call from the watcher thread.
    """

    def __init__(self, port: int):
        self.port = port
        self.clients: set = set()
        self.loop = asyncio.new_event_loop()

    @property
    def script(self) -> str:
        return RELOAD_SNIPPET.format(port=self.port)

    def run(self) -> None:
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self._serve())
        except OSError as exc:
            print(
                f"Live reload unavailable: websocket port {self.port} "
                f"failed to start ({exc})"
            )

    async def _serve(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self.register, "0.0.0.0", self.port):
            await asyncio.Future()

    async def register(self, websocket) -> None:
        self.clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)

    def broadcast(self) -> None:
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._send_all(message), self.loop)

    async def _send_all(self, message: str) -> None:
        for client in list(self.clients):
            try:
                await client.send(message)
            except Exception:
                self.clients.discard(client)

    def close(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)


class DevServer:
    """Build a project, serve it, and rebuild on change.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration, reloaded before every rebuild.
        output_dir: Directory being served.
        http_port: Port of the HTTP server.
        ws_port: Port of the live reload websocket.
    """

    debounce_seconds = 0.05
    settle_seconds = 0.05

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
    ):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / self.config.output_dir
        self.staging_dir = self.output_dir.with_name(f"{self.output_dir.name}.staging")
        self.http_port, self.ws_port = resolve_ports(self.config, http_port, ws_port)
        self.hub = LiveReloadHub(self.ws_port)
        self._observer: Observer | None = None
        self._busy = False
        self._last_attempt = 0.0
        self._last_snapshot: tuple | None = None

    @property
    def watched_paths(self) -> list[Path]:
        return [
            self.project_root / self.config.content_dir,
            self.project_root / self.config.layouts_dir,
            self.project_root / self.config.public_dir,
        ]

    def start(self) -> None:  # pragma: no cover - integration path
        self.build_once()
        self._last_snapshot = self.snapshot()
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self.hub.run, daemon=True).start()
        self.watch()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self.hub.close()

    def _serve_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ProjectReloadHandler", (_ReloadHandler,), {"reload_script": self.hub.script}
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at http://localhost:{self.http_port}")
        httpd.serve_forever()

    def watch(self) -> None:
        handler = _RebuildOnChange(self)
        observer = Observer()
        for path in self.watched_paths:
            if path.exists():
                observer.schedule(handler, str(path), recursive=True)
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer

    def build_once(self) -> None:
        """Build into the staging directory and swap it in on success."""
        if self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
        self.staging_dir.mkdir(parents=True)
        try:
            build_site(
                self.project_root,
                config=self.config,
                clean_output=True,
                output_dir_override=self.staging_dir,
            )
        except Exception:
            shutil.rmtree(self.staging_dir, ignore_errors=True)
            raise
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(self.staging_dir, self.output_dir)

    def rebuild(self) -> bool:
        """Rebuild after a change and tell browsers to reload.

        Returns:
            True if a new build replaced the served output.
        """
        if self._busy or time.time() - self._last_attempt < self.debounce_seconds:
            return False
        current = self.snapshot()
        if current is not None and current == self._last_snapshot:
            return False
        self._busy = True
        try:
            print("Change detected; rebuilding...")
            try:
                self.config = load_config(self.project_root)
                self.build_once()
            except REBUILD_ERRORS as exc:
                print(f"Rebuild failed; still serving the previous build.\n{exc}")
                return False
            self._last_snapshot = current
            if self.settle_seconds:
                time.sleep(self.settle_seconds)
            self.hub.broadcast()
            return True
        finally:
            self._busy = False
            self._last_attempt = time.time()

    def snapshot(self) -> tuple | None:
        """Return (path, mtime, size) for every watched file, or None if there are none."""
        files = [self.project_root / CONFIG_FILENAME]
        for root in self.watched_paths:
            if root.exists():
                files.extend(sorted(p for p in root.rglob("*") if not p.is_dir()))
        state = []
        for path in files:
            try:
                stat = path.stat()
            except OSError:
                continue
            rel = path.relative_to(self.project_root).as_posix()
            state.append((rel, stat.st_mtime_ns, stat.st_size))
        return tuple(state) or None

    def is_relevant(self, path: Path) -> bool:
        """Whether a changed path should trigger a rebuild."""
        for generated in (self.output_dir, self.staging_dir):
            if generated is not None and path.is_relative_to(generated):
                return False
        if path.parent == self.project_root:
            return path.name == CONFIG_FILENAME
        return True


class _RebuildOnChange(FileSystemEventHandler):
    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory:
            return
        if self.server.is_relevant(Path(os.fsdecode(event.src_path))):
            self.server.rebuild()
