from quest_indexer.entities import (
    CollaborationRequest,
    InviteStatus,
    Quest,
    Team,
    TeamInvite,
    TeamMember,
)
from quest_indexer.events import Event
from quest_indexer.handlers.registry import (
    COLLABORATION_MANAGER,
    get_or_create_user,
    handles,
    require,
)
from quest_indexer.ids import int_id, pair_id
from quest_indexer.store import EntityStore


def _activate_member(store: EntityStore, team: Team, user: str, event: Event) -> bool:
    """Mark ``user`` an active member of ``team``; bumps the count on transition."""
    key = pair_id(team.id, user)
    member = store.get(TeamMember, key)
    if member is None:
        member = TeamMember(id=key, team=team.id, user=user)
    if member.is_active:
        return False
    member.is_active = True
    member.joined_at = event.block_timestamp
    member.removed_at = None
    member.join_tx_hash = event.transaction_hash
    member.remove_tx_hash = None
    store.put(member)
    team.member_count += 1
    store.put(team)
    return True


def _respond_to_invite(store: EntityStore, team: Team, invitee: str, status: InviteStatus, event: Event) -> None:
    invite = store.get(TeamInvite, pair_id(team.id, invitee))
    if invite is None:
        return
    invite.status = status
    invite.responded_at = event.block_timestamp
    invite.response_tx_hash = event.transaction_hash
    store.put(invite)


@handles(COLLABORATION_MANAGER, "TeamCreated")
def handle_team_created(store: EntityStore, event: Event) -> None:
    quest = require(store, Quest, int_id(event.arg("questId")))
    leader = get_or_create_user(store, event.addr_arg("leader"))
    team = Team(
        id=int_id(event.arg("teamId")),
        team_id=event.int_arg("teamId"),
        quest=quest.id,
        leader=leader.id,
        name=event.arg("name", ""),
        is_active=True,
        created_at=event.block_timestamp,
        creation_tx_hash=event.transaction_hash,
    )
    if not store.create_if_absent(team):
        return
    # The leader is the first member.
    _activate_member(store, team, leader.id, event)


@handles(COLLABORATION_MANAGER, "TeamDisbanded")
def handle_team_disbanded(store: EntityStore, event: Event) -> None:
    team = require(store, Team, int_id(event.arg("teamId")))
    team.is_active = False
    team.disbanded_at = event.block_timestamp
    store.put(team)


@handles(COLLABORATION_MANAGER, "TeamInviteSent")
def handle_team_invite_sent(store: EntityStore, event: Event) -> None:
    team = require(store, Team, int_id(event.arg("teamId")))
    invitee = get_or_create_user(store, event.addr_arg("invitee"))
    inviter = get_or_create_user(store, event.addr_arg("inviter"))
    key = pair_id(team.id, invitee.id)
    existing = store.get(TeamInvite, key)
    if existing is not None and existing.sent_tx_hash == event.transaction_hash:
        return
    store.put(
        TeamInvite(
            id=key,
            team=team.id,
            invitee=invitee.id,
            inviter=inviter.id,
            status=InviteStatus.PENDING,
            sent_at=event.block_timestamp,
            sent_tx_hash=event.transaction_hash,
        )
    )


@handles(COLLABORATION_MANAGER, "TeamInviteAccepted")
def handle_team_invite_accepted(store: EntityStore, event: Event) -> None:
    team = require(store, Team, int_id(event.arg("teamId")))
    invitee = get_or_create_user(store, event.addr_arg("invitee"))
    _respond_to_invite(store, team, invitee.id, InviteStatus.ACCEPTED, event)
    _activate_member(store, team, invitee.id, event)


@handles(COLLABORATION_MANAGER, "TeamInviteRejected")
def handle_team_invite_rejected(store: EntityStore, event: Event) -> None:
    team = require(store, Team, int_id(event.arg("teamId")))
    invitee = get_or_create_user(store, event.addr_arg("invitee"))
    _respond_to_invite(store, team, invitee.id, InviteStatus.REJECTED, event)


@handles(COLLABORATION_MANAGER, "TeamMemberAdded")
def handle_team_member_added(store: EntityStore, event: Event) -> None:
    team = require(store, Team, int_id(event.arg("teamId")))
    member = get_or_create_user(store, event.addr_arg("member"))
    _activate_member(store, team, member.id, event)


@handles(COLLABORATION_MANAGER, "TeamMemberRemoved")
def handle_team_member_removed(store: EntityStore, event: Event) -> None:
    team = require(store, Team, int_id(event.arg("teamId")))
    user = get_or_create_user(store, event.addr_arg("member"))
    member = store.get(TeamMember, pair_id(team.id, user.id))
    if member is None or not member.is_active:
        return
    member.is_active = False
    member.removed_at = event.block_timestamp
    member.remove_tx_hash = event.transaction_hash
    store.put(member)
    team.member_count = max(0, team.member_count - 1)
    store.put(team)


@handles(COLLABORATION_MANAGER, "CollaborationRequestCreated")
def handle_collaboration_request_created(store: EntityStore, event: Event) -> None:
    quest = require(store, Quest, int_id(event.arg("questId")))
    requester = get_or_create_user(store, event.addr_arg("requester"))
    store.create_if_absent(
        CollaborationRequest(
            id=int_id(event.arg("requestId")),
            request_id=event.int_arg("requestId"),
            quest=quest.id,
            requester=requester.id,
            created_at=event.block_timestamp,
            tx_hash=event.transaction_hash,
        )
    )
