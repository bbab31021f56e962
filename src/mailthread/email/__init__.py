"""Email domain: Gmail boundary, threading, attachments, and thread assembly."""

from mailthread.email.aggregation import aggregate_label_messages
from mailthread.email.attachments import AttachmentIndexer, iter_parts
from mailthread.email.client import GmailClient, RemoteMailbox
from mailthread.email.compose import ReplyComposer
from mailthread.email.labels import LabelAction, LabelModification, label_modification
from mailthread.email.models import (
    AttachmentDescriptor,
    ComposeFields,
    DownloadedAttachment,
    EncodedMessage,
    Message,
    MessagePart,
    MessageSummary,
    OutgoingAttachment,
    Participant,
    SendResult,
    Thread,
    ThreadingContext,
    ThreadStubPage,
    ThreadSummary,
)
from mailthread.email.thread import ThreadAssembler
from mailthread.email.threading import ThreadingResolver

__all__ = [
    "AttachmentDescriptor",
    "AttachmentIndexer",
    "ComposeFields",
    "DownloadedAttachment",
    "EncodedMessage",
    "GmailClient",
    "LabelAction",
    "LabelModification",
    "Message",
    "MessagePart",
    "MessageSummary",
    "OutgoingAttachment",
    "Participant",
    "RemoteMailbox",
    "ReplyComposer",
    "SendResult",
    "Thread",
    "ThreadAssembler",
    "ThreadStubPage",
    "ThreadSummary",
    "ThreadingContext",
    "ThreadingResolver",
    "aggregate_label_messages",
    "iter_parts",
    "label_modification",
]
