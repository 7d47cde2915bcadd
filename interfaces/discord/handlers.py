from __future__ import annotations

import logging
from typing import Dict, Optional, Set, Tuple

import discord
from discord.ext import commands, tasks

from application import guests as guest_service
from application import history, ledger, session
from application.profiles import profile_for_external, update_profile
from application.stores import Stores, require_game
from application.sync import DEFAULT_POLL_INTERVAL_SECONDS, LedgerSync
from domain.errors import InvalidState, LedgerError, NotFound
from domain.models import Guest, ParticipantStatus
from domain.repositories import IdentityRepository
from interfaces.discord.formatting import (
    HELP_TEXT,
    format_history,
    format_leaderboard,
    format_participants,
    format_payout,
    format_standings,
    parse_amount,
    parse_field,
)

logger = logging.getLogger(__name__)

PROVIDER = "discord"
APPROVE_EMOJI = "✅"
DENY_EMOJI = "❌"


def create_discord_bot(
    stores: Stores,
    identity_repo: IdentityRepository,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
) -> commands.Bot:
    """
    Configure and return the Discord bot.

    Each channel hosts at most one game at a time. The binding is kept in
    memory, so after a restart players re-attach with `!join <code>`.
    """

    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.members = True
    intents.reactions = True

    # Disable the default help command so we can provide our own `!help`.
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

    # channel id -> sync of the game played in that channel
    channel_games: Dict[int, LedgerSync] = {}
    # join-request message id -> (game_id, participant_id)
    pending_joins: Dict[int, Tuple[str, str]] = {}
    # channel id -> participant ids already announced as waiting
    announced: Dict[int, Set[str]] = {}

    def _profile_id(user: discord.abc.User) -> str:
        profile = profile_for_external(
            identity_repo,
            stores.profiles,
            PROVIDER,
            str(user.id),
            user.display_name or user.name,
        )
        return profile.id

    def _bind(channel_id: int, game_id: str) -> LedgerSync:
        current = channel_games.get(channel_id)
        if current is not None and current.game_id == game_id:
            return current
        if current is not None:
            current.stop()
        sync = LedgerSync(stores, game_id)
        sync.start()
        channel_games[channel_id] = sync
        announced[channel_id] = {
            p.participant_id
            for p in sync.view.participants()
            if p.status == ParticipantStatus.PENDING
        }
        return sync

    def _unbind(channel_id: int) -> None:
        sync = channel_games.pop(channel_id, None)
        if sync is not None:
            sync.stop()
        announced.pop(channel_id, None)

    def _game_id(ctx: commands.Context) -> str:
        sync = channel_games.get(ctx.channel.id)
        if sync is None:
            raise InvalidState(
                f"no game bound to channel {ctx.channel.id}",
                "No game in this channel. Start one with !newgame or join with !join <code>.",
            )
        return sync.game_id

    def _find_guest(game_id: str, key: str) -> Guest:
        key = key.strip().lower()
        matches = [g for g in stores.guests.list_guests(game_id) if g.id.startswith(key)]
        if len(matches) != 1:
            raise NotFound("guest", key)
        return matches[0]

    async def _announce_join(channel: discord.abc.Messageable, game_id: str, participant_id: str) -> None:
        game = require_game(stores, game_id)
        name = stores.resolver.display_name(participant_id)
        host_ids = identity_repo.get_external_ids(PROVIDER, game.host_id)
        host_mention = f"<@{host_ids[0]}>" if host_ids else "Host"
        message = await channel.send(
            f"{host_mention}, {name} wants to join the game.\n"
            f"React with {APPROVE_EMOJI} to approve or {DENY_EMOJI} to deny."
        )
        await message.add_reaction(APPROVE_EMOJI)
        await message.add_reaction(DENY_EMOJI)
        pending_joins[message.id] = (game_id, participant_id)

    @tasks.loop(seconds=poll_interval)
    async def poll_games():
        """Fallback refresh for changes made outside this process."""

        for channel_id, sync in list(channel_games.items()):
            try:
                sync.refresh()
            except LedgerError as exc:
                logger.warning("Dropping game %s from channel %s: %s", sync.game_id, channel_id, exc)
                _unbind(channel_id)
                continue
            except Exception:
                logger.exception("Polling game %s failed", sync.game_id)
                continue

            seen = announced.setdefault(channel_id, set())
            waiting = [
                p.participant_id
                for p in sync.view.participants()
                if p.status == ParticipantStatus.PENDING and p.participant_id not in seen
            ]
            channel = bot.get_channel(channel_id)
            for participant_id in waiting:
                seen.add(participant_id)
                if channel is not None:
                    await _announce_join(channel, sync.game_id, participant_id)

    @poll_games.before_loop
    async def before_poll_games():
        await bot.wait_until_ready()

    @bot.event
    async def on_ready():
        logger.info("Discord bot logged in as %s (id=%s)", bot.user, bot.user.id)
        if not poll_games.is_running():
            poll_games.start()

    @bot.event
    async def on_command_error(ctx: commands.Context, error: Exception):
        if isinstance(error, commands.CommandInvokeError):
            error = error.original

        if isinstance(error, LedgerError):
            logger.debug("Rejected !%s from %s: %s", ctx.command, ctx.author, error)
            await ctx.send(error.user_message)
            return
        if isinstance(error, ValueError):
            await ctx.send(str(error))
            return
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, commands.MissingRequiredArgument):
            await ctx.send(f"Missing argument `{error.param.name}`. Type !help for usage.")
            return
        if isinstance(error, commands.UserInputError):
            await ctx.send("Could not read those arguments. Type !help for usage.")
            return

        logger.error("Command !%s failed", ctx.command, exc_info=error)
        await ctx.send("Something went wrong.")

    @bot.command(name="help")
    async def help_cmd(ctx: commands.Context):
        await ctx.send(f"```\n{HELP_TEXT}```")

    @bot.command(name="newgame")
    async def newgame_cmd(ctx: commands.Context, *, description: Optional[str] = None):
        host_id = _profile_id(ctx.author)
        game = session.create_game(stores, host_id, description)
        _bind(ctx.channel.id, game.id)
        await ctx.send(
            f"New game started by {ctx.author.display_name}. "
            f"Others can join with `!join {game.short_code}`."
        )

    @bot.command(name="join")
    async def join_cmd(ctx: commands.Context, code: str):
        participant_id = _profile_id(ctx.author)
        participant = ledger.join_by_code(stores, code, participant_id)
        sync = _bind(ctx.channel.id, participant.game_id)

        if participant.status == ParticipantStatus.APPROVED:
            await ctx.send("You are already in this game.")
            return
        if participant.status == ParticipantStatus.DENIED:
            await ctx.send("You were removed from this game. Use !rejoin to ask again.")
            return

        seen = announced.setdefault(ctx.channel.id, set())
        if participant_id not in seen:
            seen.add(participant_id)
            await _announce_join(ctx.channel, sync.game_id, participant_id)

    @bot.command(name="games")
    async def games_cmd(ctx: commands.Context):
        games = session.games_for_participant(stores, _profile_id(ctx.author))
        if not games:
            await ctx.send("You are not in any open games.")
            return
        lines = []
        for g in games:
            line = f"`{g.short_code}` ({g.status.value})"
            if g.description:
                line += f": {g.description}"
            lines.append(line)
        await ctx.send("\n".join(lines))

    @bot.command(name="players")
    async def players_cmd(ctx: commands.Context):
        game = require_game(stores, _game_id(ctx))
        sync = channel_games[ctx.channel.id]
        sync.refresh()
        guests = guest_service.list_guests(stores, game.id)
        header = f"Game {game.short_code} ({game.status.value})"
        if game.description:
            header += f": {game.description}"
        await ctx.send(f"{header}\n{format_participants(sync.view.participants(), game.host_id, guests)}")

    @bot.command(name="request")
    async def request_cmd(ctx: commands.Context, cash_in: str, cash_out: str):
        game_id = _game_id(ctx)
        caller_id = _profile_id(ctx.author)
        participant = ledger.set_requested_amounts(
            stores, game_id, caller_id, parse_amount(cash_in), parse_amount(cash_out), caller_id
        )
        if participant.status == ParticipantStatus.DENIED:
            await ctx.send("You were removed from this game. Use !rejoin to ask again.")
            return
        await ctx.send(
            f"{ctx.author.display_name} requested in {participant.requested_cash_in:.2f}"
            f" / out {participant.requested_cash_out:.2f}. Waiting for the host."
        )

    @bot.command(name="approve")
    async def approve_cmd(ctx: commands.Context, member: discord.Member):
        participant = ledger.approve(stores, _game_id(ctx), _profile_id(member), _profile_id(ctx.author))
        await ctx.send(
            f"{member.display_name} approved (in {participant.cash_in:.2f} / out {participant.cash_out:.2f})."
        )

    @bot.command(name="deny")
    async def deny_cmd(ctx: commands.Context, member: discord.Member):
        ledger.deny(stores, _game_id(ctx), _profile_id(member), _profile_id(ctx.author))
        await ctx.send(f"{member.display_name} was denied.")

    @bot.command(name="kick")
    async def kick_cmd(ctx: commands.Context, member: discord.Member):
        ledger.kick(stores, _game_id(ctx), _profile_id(member), _profile_id(ctx.author))
        await ctx.send(f"{member.display_name} was removed from the game.")

    @bot.command(name="rejoin")
    async def rejoin_cmd(ctx: commands.Context):
        game_id = _game_id(ctx)
        caller_id = _profile_id(ctx.author)
        ledger.request_rejoin(stores, game_id, caller_id, caller_id)
        announced.setdefault(ctx.channel.id, set()).add(caller_id)
        await _announce_join(ctx.channel, game_id, caller_id)

    @bot.command(name="set")
    async def set_cmd(ctx: commands.Context, member: discord.Member, cash_in: str, cash_out: str):
        participant = ledger.set_confirmed_amounts(
            stores,
            _game_id(ctx),
            _profile_id(member),
            parse_amount(cash_in),
            parse_amount(cash_out),
            _profile_id(ctx.author),
        )
        await ctx.send(
            f"{member.display_name}: in {participant.cash_in:.2f} / out {participant.cash_out:.2f}."
        )

    @bot.command(name="accept")
    async def accept_cmd(ctx: commands.Context, member: discord.Member, field: str):
        participant = ledger.approve_requested_delta(
            stores, _game_id(ctx), _profile_id(member), parse_field(field), _profile_id(ctx.author)
        )
        await ctx.send(
            f"{member.display_name}: in {participant.cash_in:.2f} / out {participant.cash_out:.2f}."
        )

    @bot.command(name="reject")
    async def reject_cmd(ctx: commands.Context, member: discord.Member, field: str):
        ledger.reject_requested_delta(
            stores, _game_id(ctx), _profile_id(member), parse_field(field), _profile_id(ctx.author)
        )
        await ctx.send(f"Rejected {member.display_name}'s requested {field} change.")

    @bot.group(name="guest", invoke_without_command=True)
    async def guest_cmd(ctx: commands.Context):
        await ctx.send("Usage: !guest add <name> [in] [out] | !guest set <id> <in> <out> | !guest remove <id>")

    @guest_cmd.command(name="add")
    async def guest_add_cmd(ctx: commands.Context, name: str, cash_in: str = "0", cash_out: str = "0"):
        guest = guest_service.add_guest(
            stores,
            _game_id(ctx),
            _profile_id(ctx.author),
            name,
            parse_amount(cash_in),
            parse_amount(cash_out),
        )
        await ctx.send(f"Guest {guest.name} added (id {guest.id[:8]}).")

    @guest_cmd.command(name="set")
    async def guest_set_cmd(ctx: commands.Context, guest_key: str, cash_in: str, cash_out: str):
        guest = _find_guest(_game_id(ctx), guest_key)
        guest = guest_service.update_guest(
            stores,
            guest.id,
            _profile_id(ctx.author),
            cash_in=parse_amount(cash_in),
            cash_out=parse_amount(cash_out),
        )
        await ctx.send(f"Guest {guest.name}: in {guest.cash_in:.2f} / out {guest.cash_out:.2f}.")

    @guest_cmd.command(name="remove")
    async def guest_remove_cmd(ctx: commands.Context, guest_key: str):
        guest = _find_guest(_game_id(ctx), guest_key)
        guest_service.remove_guest(stores, guest.id, _profile_id(ctx.author))
        await ctx.send(f"Guest {guest.name} removed.")

    @bot.command(name="close")
    async def close_cmd(ctx: commands.Context):
        session.close(stores, _game_id(ctx), _profile_id(ctx.author))
        await ctx.send("Session closed. Amounts are locked; !reopen starts a new session.")

    @bot.command(name="reopen")
    async def reopen_cmd(ctx: commands.Context):
        session.reopen(stores, _game_id(ctx), _profile_id(ctx.author))
        await ctx.send("New session started. Amounts were reset and guests removed.")

    @bot.command(name="end")
    async def end_cmd(ctx: commands.Context):
        result = session.end(stores, _game_id(ctx), _profile_id(ctx.author))
        _unbind(ctx.channel.id)
        await ctx.send(f"Game over.\n{format_payout(result)}")

    @bot.command(name="host")
    async def host_cmd(ctx: commands.Context, member: discord.Member):
        session.transfer_host(stores, _game_id(ctx), _profile_id(ctx.author), _profile_id(member))
        await ctx.send(f"{member.display_name} is now the host.")

    @bot.command(name="payout")
    async def payout_cmd(ctx: commands.Context):
        await ctx.send(format_payout(session.payout(stores, _game_id(ctx))))

    @bot.command(name="history")
    async def history_cmd(ctx: commands.Context):
        await ctx.send(format_history(history.session_history(stores, _game_id(ctx))))

    @bot.command(name="standings")
    async def standings_cmd(ctx: commands.Context):
        await ctx.send(format_standings(history.game_standings(stores, _game_id(ctx))))

    @bot.command(name="leaderboard")
    async def leaderboard_cmd(ctx: commands.Context):
        profiles = history.leaderboard(stores)
        await ctx.send(format_leaderboard(profiles, stores.resolver.display_name))

    @bot.command(name="venmo")
    async def venmo_cmd(ctx: commands.Context, handle: str):
        profile = update_profile(stores.profiles, stores.resolver, _profile_id(ctx.author), venmo_handle=handle)
        await ctx.send(f"Payouts will show you as @{profile.venmo_handle}.")

    @bot.command(name="visibility")
    async def visibility_cmd(ctx: commands.Context, choice: str):
        choice = choice.strip().lower()
        if choice not in ("public", "private"):
            raise ValueError("Use `!visibility public` or `!visibility private`.")
        update_profile(
            stores.profiles, stores.resolver, _profile_id(ctx.author), profile_public=choice == "public"
        )
        await ctx.send(f"Your profile is now {choice}.")

    @bot.event
    async def on_reaction_add(reaction: discord.Reaction, user: discord.abc.User):
        # Ignore bot reactions and reactions not on tracked messages.
        if user.bot:
            return

        message_id = reaction.message.id
        if message_id not in pending_joins:
            return

        emoji = str(reaction.emoji)
        if emoji not in (APPROVE_EMOJI, DENY_EMOJI):
            return

        game_id, participant_id = pending_joins[message_id]
        game = stores.games.get_game(game_id)
        reactor_id = _profile_id(user)
        # Only the current host can decide.
        if game is None or reactor_id != game.host_id:
            return

        channel = reaction.message.channel
        name = stores.resolver.display_name(participant_id)
        try:
            if emoji == APPROVE_EMOJI:
                ledger.approve(stores, game_id, participant_id, reactor_id)
                text = f"{name} joined the game."
            else:
                ledger.deny(stores, game_id, participant_id, reactor_id)
                text = f"{name} was denied."
        except LedgerError as exc:
            await channel.send(exc.user_message)
            return
        finally:
            # Once reacted, remove the pending request.
            pending_joins.pop(message_id, None)

        await channel.send(text)

    return bot
