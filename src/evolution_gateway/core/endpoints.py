"""Static endpoint table for the gateway REST surface.

Maps operation names to (verb, path template, operation class) so that
dispatch and rate-limit grouping are data rather than branching code.
Path templates may contain an ``{instance}`` placeholder.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from evolution_gateway.core.errors import NotFoundError
from evolution_gateway.core.resilience.models import OperationClass

INSTANCE_PLACEHOLDER = "{instance}"

_MEDIA = OperationClass.MEDIA.value
_MESSAGES = OperationClass.MESSAGES.value
_DEFAULT = OperationClass.DEFAULT.value


@dataclass(frozen=True)
class Endpoint:
    """One gateway operation."""

    name: str
    method: str
    path: str
    operation_class: str = _DEFAULT

    @property
    def instance_scoped(self) -> bool:
        return INSTANCE_PLACEHOLDER in self.path

    def render(self, instance: Optional[str] = None) -> str:
        return render_path(self.path, instance)


_TABLE: Tuple[Tuple[str, str, str, str], ...] = (
    # Instance lifecycle
    ("instance.create", "POST", "instance/create", _DEFAULT),
    ("instance.fetch_instances", "GET", "instance/fetchInstances", _DEFAULT),
    ("instance.connect", "GET", "instance/connect/{instance}", _DEFAULT),
    ("instance.connection_state", "GET", "instance/connectionState/{instance}", _DEFAULT),
    ("instance.restart", "PUT", "instance/restart/{instance}", _DEFAULT),
    ("instance.logout", "DELETE", "instance/logout/{instance}", _DEFAULT),
    ("instance.delete", "DELETE", "instance/delete/{instance}", _DEFAULT),
    ("instance.set_presence", "POST", "instance/setPresence/{instance}", _DEFAULT),
    ("instance.qrcode", "GET", "instance/qrcode/{instance}", _DEFAULT),
    ("instance.qrcode_base64", "GET", "instance/qrcode-base64/{instance}", _DEFAULT),
    ("instance.refresh_qrcode", "POST", "instance/refreshQrCode/{instance}", _DEFAULT),
    ("instance.verify_code", "POST", "instance/verifyCode/{instance}", _DEFAULT),
    ("instance.get_settings", "GET", "instance/settings/{instance}", _DEFAULT),
    ("instance.update_settings", "PUT", "instance/settings/{instance}", _DEFAULT),
    # Messages
    ("message.send_text", "POST", "message/sendText/{instance}", _MESSAGES),
    ("message.send_location", "POST", "message/sendLocation/{instance}", _MESSAGES),
    ("message.send_contact", "POST", "message/sendContact/{instance}", _MESSAGES),
    ("message.send_poll", "POST", "message/sendPoll/{instance}", _MESSAGES),
    ("message.send_list", "POST", "message/sendList/{instance}", _MESSAGES),
    ("message.send_reaction", "POST", "message/sendReaction/{instance}", _MESSAGES),
    ("message.send_status", "POST", "message/sendStatus/{instance}", _MESSAGES),
    ("message.send_template", "POST", "message/sendTemplate/{instance}", _MESSAGES),
    ("message.send_buttons", "POST", "message/sendButtons/{instance}", _MESSAGES),
    ("message.send_presence", "POST", "message/sendPresence/{instance}", _MESSAGES),
    ("message.send_media", "POST", "message/sendMedia/{instance}", _MEDIA),
    ("message.send_audio", "POST", "message/sendWhatsAppAudio/{instance}", _MEDIA),
    ("message.send_sticker", "POST", "message/sendSticker/{instance}", _MEDIA),
    ("message.read", "POST", "message/readMessage/{instance}", _MESSAGES),
    ("message.archive_chat", "POST", "message/archiveChat/{instance}", _MESSAGES),
    ("message.delete", "DELETE", "message/delete/{instance}", _MESSAGES),
    ("message.update", "PUT", "message/update/{instance}", _MESSAGES),
    ("message.star", "POST", "message/star/{instance}", _MESSAGES),
    ("message.get_by_id", "POST", "message/getMessageById/{instance}", _MESSAGES),
    # Chats and contacts
    ("chat.whatsapp_numbers", "POST", "chat/whatsappNumbers/{instance}", _DEFAULT),
    ("chat.find_chats", "GET", "chat/findChats/{instance}", _DEFAULT),
    ("chat.find_chat", "POST", "chat/findChat/{instance}", _DEFAULT),
    ("chat.find_contacts", "POST", "chat/findContacts/{instance}", _DEFAULT),
    ("chat.find_messages", "POST", "chat/findMessages/{instance}", _DEFAULT),
    ("chat.find_labels", "GET", "chat/findLabels/{instance}", _DEFAULT),
    ("chat.find_status_messages", "GET", "chat/findStatusMessages/{instance}", _DEFAULT),
    ("chat.archive", "POST", "chat/archiveChat/{instance}", _DEFAULT),
    ("chat.mark_unread", "POST", "chat/markChatUnread/{instance}", _DEFAULT),
    ("chat.mute", "POST", "chat/muteChat/{instance}", _DEFAULT),
    ("chat.unmute", "POST", "chat/unmuteChat/{instance}", _DEFAULT),
    ("chat.pin", "POST", "chat/pinChat/{instance}", _DEFAULT),
    ("chat.block_contact", "POST", "chat/blockContact/{instance}", _DEFAULT),
    ("chat.update_contact", "POST", "chat/updateContact/{instance}", _DEFAULT),
    ("chat.fetch_presence", "POST", "chat/fetchPresence/{instance}", _DEFAULT),
    ("chat.fetch_profile_picture_url", "POST", "chat/fetchProfilePictureUrl/{instance}", _DEFAULT),
    ("chat.fetch_business_profile", "POST", "chat/fetchBusinessProfile/{instance}", _DEFAULT),
    ("chat.delete", "DELETE", "chat/deleteChat/{instance}", _DEFAULT),
    ("chat.clear_messages", "DELETE", "chat/clearMessages/{instance}", _DEFAULT),
    # Groups
    ("group.create", "POST", "group/create/{instance}", _DEFAULT),
    ("group.fetch_all", "GET", "group/fetchAllGroups/{instance}", _DEFAULT),
    ("group.find_info", "GET", "group/findGroupInfos/{instance}", _DEFAULT),
    ("group.participants", "GET", "group/participants/{instance}", _DEFAULT),
    ("group.pending_participants", "GET", "group/pendingParticipants/{instance}", _DEFAULT),
    ("group.accept_pending_participant", "POST", "group/acceptPendingParticipant/{instance}", _DEFAULT),
    ("group.reject_pending_participant", "POST", "group/rejectPendingParticipant/{instance}", _DEFAULT),
    ("group.update_participant", "POST", "group/updateParticipant/{instance}", _DEFAULT),
    ("group.is_admin", "GET", "group/isAdmin/{instance}", _DEFAULT),
    ("group.invite_code", "GET", "group/inviteCode/{instance}", _DEFAULT),
    ("group.invite_info", "GET", "group/inviteInfo/{instance}", _DEFAULT),
    ("group.accept_invite_code", "POST", "group/acceptInviteCode/{instance}", _DEFAULT),
    ("group.revoke_invite_code", "PUT", "group/revokeInviteCode/{instance}", _DEFAULT),
    ("group.send_invite", "POST", "group/sendInvite/{instance}", _MESSAGES),
    ("group.update_subject", "PUT", "group/updateSubject/{instance}", _DEFAULT),
    ("group.update_description", "PUT", "group/updateDescription/{instance}", _DEFAULT),
    ("group.update_picture", "PUT", "group/updatePicture/{instance}", _MEDIA),
    ("group.remove_picture", "DELETE", "group/removePicture/{instance}", _DEFAULT),
    ("group.update_setting", "PUT", "group/updateSetting/{instance}", _DEFAULT),
    ("group.toggle_ephemeral", "POST", "group/toggleEphemeral/{instance}", _DEFAULT),
    ("group.leave", "DELETE", "group/leaveGroup/{instance}", _DEFAULT),
    # Profile
    ("profile.fetch", "GET", "profile/fetchProfile/{instance}", _DEFAULT),
    ("profile.fetch_business", "GET", "profile/fetchBusinessProfile/{instance}", _DEFAULT),
    ("profile.fetch_picture", "GET", "profile/fetchProfilePicture/{instance}", _DEFAULT),
    ("profile.fetch_privacy_settings", "GET", "profile/fetchPrivacySettings/{instance}", _DEFAULT),
    ("profile.update_name", "POST", "profile/updateProfileName/{instance}", _DEFAULT),
    ("profile.update_status", "POST", "profile/updateProfileStatus/{instance}", _DEFAULT),
    ("profile.update_picture", "POST", "profile/updateProfilePicture/{instance}", _MEDIA),
    ("profile.remove_picture", "DELETE", "profile/removeProfilePicture/{instance}", _DEFAULT),
    ("profile.update_business", "POST", "profile/updateBusinessProfile/{instance}", _DEFAULT),
    ("profile.update_privacy_settings", "POST", "profile/updatePrivacySettings/{instance}", _DEFAULT),
    # Instance settings and webhooks
    ("settings.set", "POST", "settings/set/{instance}", _DEFAULT),
    ("settings.find", "GET", "settings/find/{instance}", _DEFAULT),
    ("webhook.set", "POST", "webhook/set/{instance}", _DEFAULT),
    ("webhook.find", "GET", "webhook/find/{instance}", _DEFAULT),
)

ENDPOINTS: Dict[str, Endpoint] = {
    name: Endpoint(name=name, method=method, path=path, operation_class=op_class)
    for name, method, path, op_class in _TABLE
}

# Ordered: first match wins. Used for raw paths that are not in ENDPOINTS.
OPERATION_CLASS_PATTERNS: List[Tuple[Pattern[str], str]] = [
    (
        re.compile(
            r"(sendMedia|sendImage|sendVideo|sendAudio|sendWhatsAppAudio|sendDocument|sendSticker)",
            re.IGNORECASE,
        ),
        _MEDIA,
    ),
    (re.compile(r"(send|message)", re.IGNORECASE), _MESSAGES),
]

_TEMPLATE_PATTERNS: List[Tuple[Pattern[str], str]] = [
    (
        re.compile(re.escape(e.path).replace(re.escape(INSTANCE_PLACEHOLDER), r"[^/]+")),
        e.operation_class,
    )
    for e in ENDPOINTS.values()
]


def get_endpoint(name: str) -> Endpoint:
    """Look up an operation by name.

    Raises:
        KeyError: If the operation is unknown.
    """
    try:
        return ENDPOINTS[name]
    except KeyError:
        raise KeyError(f"Unknown gateway operation '{name}'") from None


def operations(prefix: Optional[str] = None) -> Iterable[Endpoint]:
    for endpoint in ENDPOINTS.values():
        if prefix is None or endpoint.name.startswith(prefix + "."):
            yield endpoint


def infer_operation_class(path: str) -> str:
    """Operation class for a raw path.

    Paths matching a table template use the table's class; anything else
    goes through ``OPERATION_CLASS_PATTERNS`` and falls back to ``default``.
    """
    stripped = path.split("?", 1)[0].strip("/")
    for template, op_class in _TEMPLATE_PATTERNS:
        if template.fullmatch(stripped):
            return op_class
    for pattern, op_class in OPERATION_CLASS_PATTERNS:
        if pattern.search(stripped):
            return op_class
    return _DEFAULT


def render_path(path: str, instance: Optional[str] = None) -> str:
    """Fill the ``{instance}`` placeholder.

    Raises:
        NotFoundError: If the path needs an instance and none is given.
    """
    if INSTANCE_PLACEHOLDER not in path:
        return path
    if not instance:
        raise NotFoundError(
            f"Instance name is required for endpoint '{path}'",
            instance=None,
        )
    return path.replace(INSTANCE_PLACEHOLDER, instance)
