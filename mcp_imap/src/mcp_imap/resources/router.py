"""Map ``mcp-imap`` resource URIs onto mailbox operations.

What:
  Register the discovery resource and the three resource templates (email
  collection, email head, email bodies), resolve incoming URIs against them,
  invoke the mailbox capabilities, and serialise the results into resource
  contents.

Why:
  The MCP server only knows URIs and content items. Keeping the URI space,
  the JSON payload shapes, and the per-resource error policy in one module
  makes the protocol surface reviewable independently of IMAP.

How:
  :class:`ResourceRouter` holds :class:`ResourceEntry` records pairing a URI
  or :class:`~mcp_imap.resources.templates.UriTemplate` with a handler.
  :meth:`ResourceRouter.read` tries fixed URIs first, then templates.
  Listing collects per-item failures into an :class:`ExceptionGroup` returned
  next to the partial contents; head and bodies raise on the first failure.

Interfaces:
  :class:`Mailbox` (capabilities the router consumes), :class:`ResourceRouter`,
  :class:`ResourceContent`, :class:`ReadResult`, :class:`ResourceEntry`, the
  template constants.

Invariants & Safety:
  - Every listed summary is addressed at ``.../email/{id}`` and that URI
    matches :data:`HEAD_TEMPLATE` back to the same id.
  - Body parts are emitted as raw bytes with their own MIME type.
  - Discovery performs no I/O.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Protocol, Tuple

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

from ..errors import SerializationError, TemplateMismatchError
from ..models import Discovery, EmailBodies, EmailHead, EmailSummary
from ..utils.logging import get_logger
from .templates import UriTemplate

SCHEME = "mcp-imap"
MIME_JSON = "application/json"
DISCOVERY_URI = f"{SCHEME}:///"
ROOT_TEMPLATE = UriTemplate(f"{SCHEME}://{{inbox}}@{{host}}/")
HEAD_TEMPLATE = UriTemplate(f"{SCHEME}://{{inbox}}@{{host}}/email/{{email.id}}")
BODIES_TEMPLATE = UriTemplate(f"{SCHEME}://{{inbox}}@{{host}}/email/{{email.id}}/bodies")

SummaryPair = Tuple[Optional[EmailSummary], Optional[Exception]]


class SummaryCursor(Protocol):
    """Closable iterator of ``(summary, error)`` pairs."""

    def __enter__(self) -> "SummaryCursor":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...

    def __iter__(self) -> Iterator[SummaryPair]:
        ...


class Mailbox(Protocol):
    """Capabilities required from a mailbox backend."""

    @property
    def mailbox(self) -> str:
        ...

    @property
    def host(self) -> str:
        ...

    def list_emails(self) -> SummaryCursor:
        ...

    def retrieve_email_head(self, identifier: str) -> EmailHead:
        ...

    def retrieve_email_body(self, identifier: str) -> EmailBodies:
        ...


@dataclass(frozen=True)
class ResourceContent:
    """One content item of a resource read: either ``text`` or ``blob``."""

    uri: str
    mime_type: Optional[str]
    text: Optional[str] = None
    blob: Optional[bytes] = None


@dataclass
class ReadResult:
    """Contents of a read plus the non-fatal problems met while listing."""

    contents: List[ResourceContent] = field(default_factory=list)
    problem: Optional[ExceptionGroup] = None


@dataclass(frozen=True)
class ResourceEntry:
    """A registered resource (``template`` is ``None``) or resource template."""

    uri: str
    name: str
    description: str
    mime_type: Optional[str]
    handler: Callable[[str], ReadResult]
    template: Optional[UriTemplate] = None


def account_uri(mailbox: str, host: str) -> str:
    return ROOT_TEMPLATE.expand(inbox=mailbox, host=host)


def _encode(model: BaseModel) -> str:
    try:
        return model.model_dump_json(by_alias=True)
    except (PydanticSerializationError, ValueError, TypeError) as exc:
        raise SerializationError(f"encoding {type(model).__name__}: {exc}") from exc


def _email_id(template: UriTemplate, uri: str) -> str:
    values = template.match(uri)
    if values is None:
        raise TemplateMismatchError(f"uri {uri} does not match template {template.template}")
    email_id = values.get("email.id", "")
    if not email_id:
        raise TemplateMismatchError(f"email id not found in uri {uri}")
    return email_id


class ResourceRouter:
    """Resolve ``mcp-imap`` URIs to mailbox calls and resource contents."""

    def __init__(self, mailbox: Mailbox):
        self._mailbox = mailbox
        self._logger = get_logger("mcp_imap.resources.router")
        self._resources = [
            ResourceEntry(
                uri=DISCOVERY_URI,
                name="Lists available IMAP accounts",
                description="Discovers available accounts for mcp-imap",
                mime_type=MIME_JSON,
                handler=self.handle_discovery,
            ),
        ]
        self._templates = [
            ResourceEntry(
                uri=ROOT_TEMPLATE.template,
                name="Retrieves emails",
                description="Retrieves emails for the given user given the account URI",
                mime_type=MIME_JSON,
                handler=self.handle_collection,
                template=ROOT_TEMPLATE,
            ),
            ResourceEntry(
                uri=HEAD_TEMPLATE.template,
                name="E-mail summary",
                description="Pulls the summary of the e-mails",
                mime_type=MIME_JSON,
                handler=self.handle_email,
                template=HEAD_TEMPLATE,
            ),
            ResourceEntry(
                uri=BODIES_TEMPLATE.template,
                name="Retrieve the bodies of a specific emails",
                description="Retrieve the bodies of a specific emails",
                mime_type=None,
                handler=self.handle_email_bodies,
                template=BODIES_TEMPLATE,
            ),
        ]

    @property
    def mailbox(self) -> Mailbox:
        return self._mailbox

    def resources(self) -> List[ResourceEntry]:
        return list(self._resources)

    def templates(self) -> List[ResourceEntry]:
        return list(self._templates)

    def read(self, uri: str) -> ReadResult:
        """Dispatch ``uri`` to the matching handler.

        Raises:
          TemplateMismatchError: No resource or template fits ``uri``.
        """

        for entry in self._resources:
            if entry.uri == uri:
                return entry.handler(uri)
        for entry in self._templates:
            if entry.template is not None and entry.template.match(uri) is not None:
                return entry.handler(uri)
        raise TemplateMismatchError(f"uri {uri} does not match any resource")

    def handle_discovery(self, uri: str) -> ReadResult:
        mailbox, host = self._mailbox.mailbox, self._mailbox.host
        account = account_uri(mailbox, host)
        payload = _encode(Discovery(mailbox=mailbox, host=host, uri=account))
        return ReadResult(contents=[ResourceContent(uri=account, mime_type=MIME_JSON, text=payload)])

    def handle_collection(self, uri: str) -> ReadResult:
        """List recent emails, collecting per-item failures instead of aborting.

        Session and search failures still raise: there is nothing to list.
        """

        mailbox, host = self._mailbox.mailbox, self._mailbox.host
        result = ReadResult()
        problems: List[Exception] = []
        with self._mailbox.list_emails() as cursor:
            for summary, problem in cursor:
                if problem is not None:
                    problems.append(problem)
                    continue
                try:
                    text = _encode(summary)
                except SerializationError as exc:
                    problems.append(exc)
                    continue
                result.contents.append(
                    ResourceContent(
                        uri=HEAD_TEMPLATE.expand(inbox=mailbox, host=host, email_id=summary.id),
                        mime_type=MIME_JSON,
                        text=text,
                    )
                )
        if problems:
            result.problem = ExceptionGroup(f"{len(problems)} emails could not be listed", problems)
            self._logger.warning(
                "listing_partial", listed=len(result.contents), failed=len(problems)
            )
        return result

    def handle_email(self, uri: str) -> ReadResult:
        email_id = _email_id(HEAD_TEMPLATE, uri)
        head = self._mailbox.retrieve_email_head(email_id)
        return ReadResult(contents=[ResourceContent(uri=uri, mime_type=MIME_JSON, text=_encode(head))])

    def handle_email_bodies(self, uri: str) -> ReadResult:
        email_id = _email_id(BODIES_TEMPLATE, uri)
        bodies = self._mailbox.retrieve_email_body(email_id)
        return ReadResult(
            contents=[
                ResourceContent(uri=uri, mime_type=body.mime_type, blob=body.data)
                for body in bodies
            ]
        )
