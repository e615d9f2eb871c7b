"""Data models for Inbox Mirror.

This module contains Pydantic models for data validation and serialization.
Provider models accept the provider's camelCase JSON names as aliases and
expose snake_case attributes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from inbox_mirror.models.mirrored_message import MirroredMessage


class _ProviderModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Domain(_ProviderModel):
    """A domain new addresses can be registered under."""

    id: str = Field(description="Provider domain ID")
    domain: str = Field(description="Domain name")
    is_active: bool = Field(default=True, alias="isActive")
    is_private: bool = Field(default=False, alias="isPrivate")


class ProviderAccount(_ProviderModel):
    """Account record returned by account creation and the identity endpoint."""

    id: str = Field(description="Provider account ID")
    address: str = Field(description="Mailbox address")
    quota: int = Field(default=0, description="Storage quota in bytes")
    used: int = Field(default=0, description="Storage used in bytes")
    is_disabled: bool = Field(default=False, alias="isDisabled")
    is_deleted: bool = Field(default=False, alias="isDeleted")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class EmailAddress(_ProviderModel):
    """A mailbox with an optional display name."""

    address: str = Field(description="Email address")
    name: Optional[str] = Field(default=None, description="Display name")


class Message(_ProviderModel):
    """Provider view of a message.

    Listings only carry summary fields; ``text`` and ``html`` are filled in
    by the per-message fetch.
    """

    id: str = Field(description="Provider message ID")
    sender: EmailAddress = Field(alias="from", description="Sender")
    recipients: list[EmailAddress] = Field(
        default_factory=list, alias="to", description="Recipients"
    )
    subject: str = Field(default="", description="Subject line")
    intro: str = Field(default="", description="Short preview of the body")
    seen: bool = Field(default=False, description="Whether the message was opened")
    is_deleted: bool = Field(default=False, alias="isDeleted")
    has_attachments: bool = Field(default=False, alias="hasAttachments")
    size: int = Field(default=0, description="Message size in bytes")
    created_at: datetime = Field(alias="createdAt", description="Receipt timestamp")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    text: Optional[str] = Field(default=None, description="Plain-text body")
    html: Optional[str] = Field(default=None, description="HTML body")

    @property
    def has_body(self) -> bool:
        return self.text is not None or self.html is not None


class MessagePage(BaseModel):
    """One page of a provider message listing."""

    messages: list[Message] = Field(default_factory=list)
    total: int = Field(default=0, description="Provider-side total item count")


class MessageBody(BaseModel):
    """Cached full content of a message, used for search."""

    text: str = Field(default="")
    html: str = Field(default="")


class Account(BaseModel):
    """The identity of one mailbox together with its bearer token."""

    id: Optional[str] = Field(default=None, description="Provider account ID, if known")
    address: str = Field(description="Mailbox address")
    token: str = Field(description="Bearer token issued by the provider")


class StoredAccount(BaseModel):
    """An entry of the locally remembered account list."""

    email: str
    token: str
    label: str = ""


class InboxView(BaseModel):
    """Merged, deduplicated and recency-sorted inbox for one refresh cycle."""

    messages: list[Message] = Field(default_factory=list)
    total: int = Field(default=0, description="Number of messages in the merged view")
    account_email: Optional[str] = Field(default=None)
    mirrored: bool = Field(
        default=False, description="Whether mirror records took part in the merge"
    )


__all__ = [
    "Account",
    "Domain",
    "EmailAddress",
    "InboxView",
    "Message",
    "MessageBody",
    "MessagePage",
    "MirroredMessage",
    "ProviderAccount",
    "StoredAccount",
]
