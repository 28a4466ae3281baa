"""
Session state and command dispatch for the assistant page.

Design & Rationale:
- All per-user state (current file, rendered answer, charts, messages) lives in
  one SessionState owned by an Assistant; nothing is module-global.
- UI actions are plain handler methods reached through a dispatch table, so the
  page behavior can be exercised without a browser.
- The Assistant talks to the relay over HTTP through RelayClient, exactly like
  the page does. It is the client side of the service: the page drives the same
  actions, and `excelhub-ask` (main below) asks one question from a terminal.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from .errors import AssistantError, IngestionError, InvalidRequestError
from .ingest import FileKind, ingest_file
from .render import render_markdown

logger = logging.getLogger(__name__)

MISSING_KEY_MARKER = "API key not configured"


def provider_label(provider: str) -> str:
    return provider[:1].upper() + provider[1:]


@dataclass
class LocalFile:
    """A file picked or dropped by the user."""

    name: str
    file_type: Optional[str]
    data: bytes


@dataclass
class SessionState:
    current_file: Optional[str] = None
    file_content: Optional[Any] = None
    file_type: Optional[str] = None
    file_kind: Optional[FileKind] = None
    file_preview: Optional[Dict[str, Any]] = None
    is_generating: bool = False
    drop_active: bool = False
    content_html: str = ""
    charts: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    notification: Optional[str] = None
    quick_answers: List[Dict[str, Any]] = field(default_factory=list)
    quick_answers_error: Optional[str] = None


class RelayClientError(AssistantError):
    """Non-success reply from the relay, message prefixed with the provider label."""


class RelayClient:
    """Calls the relay endpoints over HTTP."""

    def __init__(self, client: httpx.Client):
        self.client = client

    def ask(self, provider: str, payload: Dict[str, Any]) -> Optional[str]:
        response = self.client.post(f"/api/{provider}", json=payload)
        if not response.is_success:
            try:
                data = response.json()
            except ValueError:
                data = None
            error = data.get("error") if isinstance(data, dict) else None
            raise RelayClientError(
                f"{provider_label(provider)}: {error or f'HTTP {response.status_code}'}",
                status_code=response.status_code,
            )
        data = response.json()
        if not isinstance(data, dict):
            raise RelayClientError(
                f"{provider_label(provider)}: Unexpected response from the server.",
                status_code=response.status_code,
            )
        return data.get("response")

    def quick_answers(self) -> List[Dict[str, Any]]:
        response = self.client.get("/api/quick-answers")
        response.raise_for_status()
        return response.json()


def demo_content(query: str) -> str:
    """Placeholder guide shown when the selected provider has no credential."""
    return (
        f"# Excel Guide: {query}\n\n"
        "## Introduction\n\n"
        f"This is a demo response for your query: \"{query}\". Once an API key is configured "
        "on the server, this will be replaced with a detailed, AI-generated guide.\n\n"
        "## Steps to Implement\n\n"
        "1. **Get an API Key**: Visit the provider's website (Google Gemini or Groq) to get a free API key.\n"
        "2. **Configure the Server**: Set `GEMINI_API_KEY` or `GROQ_API_KEY` in the server environment.\n"
        "3. **Generate Guide**: Click the \"Generate Guide\" button to get a personalized guide.\n\n"
        "## Example\n\n"
        "Here's a simple example of how to use VLOOKUP:\n\n"
        "```excel\n"
        "=VLOOKUP(\"Apple\", A2:C10, 3, FALSE)\n"
        "```\n\n"
        "This formula looks for \"Apple\" in column A and returns the corresponding value from column C.\n\n"
        "## Tips\n\n"
        "- Always use FALSE for exact matches in VLOOKUP\n"
        "- Ensure your data is properly formatted\n"
        "- Use named ranges for easier formulas"
    )


class Assistant:
    """Owns one SessionState and maps UI actions to handlers."""

    def __init__(self, relay: RelayClient, state: Optional[SessionState] = None):
        self.relay = relay
        self.state = state if state is not None else SessionState()
        self.handlers: Dict[str, Callable[..., SessionState]] = {
            "select_file": self.select_file,
            "drop_file": self.drop_file,
            "remove_file": self.remove_file,
            "drag_enter": self.drag_enter,
            "drag_leave": self.drag_leave,
            "generate": self.generate,
            "dismiss_error": self.dismiss_error,
            "load_quick_answers": self.load_quick_answers,
        }

    def dispatch(self, action: str, **kwargs) -> SessionState:
        handler = self.handlers.get(action)
        if handler is None:
            raise InvalidRequestError(f"Unknown action: {action}")
        logger.debug(f"Dispatching {action}")
        return handler(**kwargs)

    # ---- messages ----

    def notify(self, message: str) -> None:
        self.state.notification = message

    def show_error(self, message: str) -> None:
        self.state.error = message

    def dismiss_error(self) -> SessionState:
        self.state.error = None
        return self.state

    # ---- files ----

    def select_file(self, file: Optional[LocalFile] = None) -> SessionState:
        """Ingest a picked file; it replaces whatever file was selected before."""
        if file is None:
            return self.state

        s = self.state
        s.current_file = file.name
        s.file_type = file.file_type
        s.file_content = None
        s.file_kind = None
        s.file_preview = None

        try:
            ingested = ingest_file(file.name, file.file_type, file.data)
        except IngestionError as e:
            self.show_error(e.message)
            return s

        s.file_content = ingested.content
        s.file_kind = ingested.kind
        s.file_preview = ingested.preview
        self.notify(ingested.message)
        return s

    def drop_file(self, files: Sequence[LocalFile] = ()) -> SessionState:
        self.state.drop_active = False
        if files:
            return self.select_file(files[0])
        return self.state

    def drag_enter(self) -> SessionState:
        self.state.drop_active = True
        return self.state

    def drag_leave(self) -> SessionState:
        self.state.drop_active = False
        return self.state

    def remove_file(self) -> SessionState:
        s = self.state
        s.current_file = None
        s.file_content = None
        s.file_type = None
        s.file_kind = None
        s.file_preview = None
        self.notify("File removed")
        return s

    # ---- generation ----

    def _build_payload(self, query: str, detail: str) -> Dict[str, Any]:
        s = self.state
        prompt = query
        if s.file_kind == FileKind.OPAQUE and s.current_file:
            prompt = f"{query}\n\n(Attached file: {s.current_file})"
        return {
            "prompt": prompt,
            "fileContent": s.file_content,
            "fileType": s.file_type,
            "responseDetail": detail,
        }

    def display(self, content: str) -> None:
        """Replace the rendered answer and its charts."""
        result = render_markdown(content)
        self.state.content_html = result.html
        self.state.charts = result.charts

    def show_demo_content(self, query: str) -> None:
        logger.info(f"Showing demo content for: {query}")
        self.display(demo_content(query))
        self.notify("Demo content loaded. Add an API key for personalized responses!")

    def generate(self, query: str = "", provider: str = "gemini", detail: str = "concise") -> SessionState:
        s = self.state
        query = (query or "").strip()
        if not query:
            self.show_error("Please enter a question about Excel")
            return s

        s.is_generating = True
        s.error = None
        try:
            response = self.relay.ask(provider, self._build_payload(query, detail))
            if not response:
                raise RelayClientError("Received an empty response from the server.")
            self.display(response)
            self.notify(f"Guide generated successfully using {provider_label(provider)}!")
        except (AssistantError, httpx.HTTPError, ValueError) as e:
            message = e.message if isinstance(e, AssistantError) else str(e)
            logger.error(f"Generation failed: {message}")
            self.show_error(f"Error: {message}")
            if MISSING_KEY_MARKER in message:
                self.show_demo_content(query)
        finally:
            s.is_generating = False
        return s

    # ---- FAQ ----

    def load_quick_answers(self) -> SessionState:
        s = self.state
        s.quick_answers = []
        s.quick_answers_error = None
        try:
            s.quick_answers = self.relay.quick_answers()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error loading quick answers: {e}")
            s.quick_answers_error = "Could not load quick answers."
        return s


def main(argv: Optional[Sequence[str]] = None, client: Optional[httpx.Client] = None) -> int:
    """CLI entry point: ask the relay one question and print the rendered answer."""
    import argparse
    import mimetypes
    import os
    import sys

    parser = argparse.ArgumentParser(description='Ask the ExcelHub AI Assistant an Excel question')
    parser.add_argument('question', nargs='+', help='Question about Excel')
    parser.add_argument('--url', default=os.getenv('EXCELHUB_URL', 'http://localhost:8000'), help='Relay base URL')
    parser.add_argument('--provider', default='gemini', choices=['gemini', 'groq'], help='Model provider')
    parser.add_argument('--detail', default='concise', choices=['concise', 'detailed'], help='Response detail')
    parser.add_argument('--file', help='CSV, workbook or image to send as context')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format='%(asctime)s - %(levelname)s - %(message)s')

    http = client if client is not None else httpx.Client(base_url=args.url, timeout=60.0)
    try:
        assistant = Assistant(RelayClient(http))
        if args.file:
            with open(args.file, 'rb') as f:
                data = f.read()
            file_type = mimetypes.guess_type(args.file)[0]
            state = assistant.dispatch(
                "select_file", file=LocalFile(os.path.basename(args.file), file_type, data)
            )
            if state.error:
                print(state.error, file=sys.stderr)
                return 1

        state = assistant.dispatch(
            "generate", query=" ".join(args.question), provider=args.provider, detail=args.detail
        )
    finally:
        if client is None:
            http.close()

    if state.error:
        print(state.error, file=sys.stderr)
    if not state.content_html:
        return 1
    print(state.content_html)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
