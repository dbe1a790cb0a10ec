"""Sign-in, sign-out and account commands for the console's backend session."""

import asyncio
import logging
from typing import Optional

import discord
from discord import app_commands

from venue_admin.commands.auth import command_error, is_authorized, requires_session
from venue_admin.messaging import get_message, record_embed, response_embed
from venue_admin.projections import format_or_default

logger = logging.getLogger(__name__)

TRUTHY_ANSWERS = {"y", "yes", "true", "1"}

OTP_PURPOSE_CHOICES = [
    app_commands.Choice(name="Email verification", value="verification"),
    app_commands.Choice(name="Password reset", value="password_reset"),
]


class LoginModal(discord.ui.Modal):
    def __init__(self):
        super().__init__(title=get_message("session.login_modal_title"))
        self.email = discord.ui.TextInput(label="Email", max_length=254)
        self.password = discord.ui.TextInput(label="Password", max_length=128)
        self.remember_me = discord.ui.TextInput(
            label=get_message("session.remember_me_label"),
            required=False,
            default="no",
            max_length=3,
        )
        for item in (self.email, self.password, self.remember_me):
            self.add_item(item)

    async def on_submit(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        bot = interaction.client
        remember = self.remember_me.value.strip().lower() in TRUTHY_ANSWERS
        response = await asyncio.to_thread(
            bot.auth.login, self.email.value.strip(), self.password.value, remember
        )
        if response.success:
            logger.info(f"{interaction.user} signed the console in as {self.email.value.strip()}")
        await interaction.followup.send(
            embed=response_embed(response, "session.login_success_title"), ephemeral=True
        )


class ChangePasswordModal(discord.ui.Modal):
    def __init__(self):
        super().__init__(title=get_message("session.change_password_title"))
        self.old_password = discord.ui.TextInput(label="Current password", max_length=128)
        self.new_password = discord.ui.TextInput(label="New password", max_length=128)
        self.new_password2 = discord.ui.TextInput(label="Confirm new password", max_length=128)
        for item in (self.old_password, self.new_password, self.new_password2):
            self.add_item(item)

    async def on_submit(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.profile.change_password,
            self.old_password.value,
            self.new_password.value,
            self.new_password2.value,
        )
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)


class PasswordResetModal(discord.ui.Modal):
    """Verifies the emailed OTP, then sets the new password."""

    def __init__(self, email: str):
        super().__init__(title=get_message("session.password_reset_title"))
        self.email = email
        self.otp = discord.ui.TextInput(label="OTP code", max_length=10)
        self.new_password = discord.ui.TextInput(label="New password", max_length=128)
        self.new_password2 = discord.ui.TextInput(label="Confirm new password", max_length=128)
        for item in (self.otp, self.new_password, self.new_password2):
            self.add_item(item)

    async def on_submit(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        auth = interaction.client.auth
        otp = self.otp.value.strip()
        response = await asyncio.to_thread(auth.password_reset_verify_otp, self.email, otp)
        if response.success:
            response = await asyncio.to_thread(
                auth.password_reset_confirm,
                self.email,
                otp,
                self.new_password.value,
                self.new_password2.value,
            )
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)


class SetPasswordModal(discord.ui.Modal):
    def __init__(self, email: str):
        super().__init__(title=get_message("session.set_password_title"))
        self.email = email
        self.password = discord.ui.TextInput(label="Password", max_length=128)
        self.password2 = discord.ui.TextInput(label="Confirm password", max_length=128)
        for item in (self.password, self.password2):
            self.add_item(item)

    async def on_submit(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.auth.set_password,
            self.email,
            self.password.value,
            self.password2.value,
        )
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)


def setup_commands(bot):
    """Register session commands with the bot."""

    @bot.tree.command(name="login", description="Sign the console in to the admin backend.")
    @is_authorized()
    async def login(interaction: discord.Interaction):
        await interaction.response.send_modal(LoginModal())

    @bot.tree.command(name="logout", description="Sign the console out of the admin backend.")
    @is_authorized()
    async def logout(interaction: discord.Interaction):
        response = await asyncio.to_thread(interaction.client.auth.logout)
        logger.info(f"{interaction.user} signed the console out")
        await interaction.response.send_message(embed=response_embed(response), ephemeral=True)

    @bot.tree.command(name="whoami", description="Show the backend account the console is signed in as.")
    @is_authorized()
    @requires_session()
    async def whoami(interaction: discord.Interaction):
        session = interaction.client.session_store.current_session()
        user = (session.user if session else None) or {}
        embed = record_embed(
            get_message("session.whoami_title"),
            [
                ("Name", format_or_default(user.get("full_name") or user.get("name"))),
                ("Email", format_or_default(user.get("email"))),
                ("Role", format_or_default(user.get("user_type") or user.get("role"))),
                ("Remember me", "Yes" if session and session.remember_me else "No"),
            ],
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @bot.tree.command(name="profile", description="Show the signed-in account's venue profile.")
    @is_authorized()
    @requires_session()
    async def profile(interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(interaction.client.profile.get_profile)
        if not response.success:
            await interaction.followup.send(embed=response_embed(response), ephemeral=True)
            return
        data = response.data if isinstance(response.data, dict) else {}
        fields = [
            (key.replace("_", " ").title(), format_or_default(data.get(key)))
            for key in interaction.client.profile.TEXT_FIELDS
        ]
        await interaction.followup.send(
            embed=record_embed(get_message("session.profile_title"), fields), ephemeral=True
        )

    @bot.tree.command(name="profile-update", description="Update the venue profile; only given fields change.")
    @is_authorized()
    @requires_session()
    async def profile_update(
        interaction: discord.Interaction,
        venue_name: Optional[str] = None,
        hospitality_venue_type: Optional[str] = None,
        capacity: Optional[int] = None,
        hours_of_operation: Optional[str] = None,
        location: Optional[str] = None,
        mobile_number: Optional[str] = None,
        profile_picture: Optional[discord.Attachment] = None,
        resume: Optional[discord.Attachment] = None,
    ):
        await interaction.response.defer(ephemeral=True, thinking=True)
        fields = {
            "venue_name": venue_name,
            "hospitality_venue_type": hospitality_venue_type,
            "capacity": capacity,
            "hours_of_operation": hours_of_operation,
            "location": location,
            "mobile_number": mobile_number,
        }
        files = {}
        for key, attachment in (("profile_picture", profile_picture), ("resume", resume)):
            if attachment is not None:
                files[key] = (attachment.filename, await attachment.read(), attachment.content_type)
        response = await asyncio.to_thread(
            interaction.client.profile.update_profile, fields, files
        )
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)

    @bot.tree.command(name="change-password", description="Change the signed-in account's password.")
    @is_authorized()
    @requires_session()
    async def change_password(interaction: discord.Interaction):
        await interaction.response.send_modal(ChangePasswordModal())

    @bot.tree.command(name="verify-email", description="Verify a backend account's email with its OTP.")
    @is_authorized()
    async def verify_email(interaction: discord.Interaction, email: str, otp: str):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.auth.verify_email, email.strip(), otp.strip()
        )
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)

    @bot.tree.command(name="resend-otp", description="Send a new OTP to a backend account's email.")
    @app_commands.choices(purpose=OTP_PURPOSE_CHOICES)
    @is_authorized()
    async def resend_otp(
        interaction: discord.Interaction,
        email: str,
        purpose: Optional[app_commands.Choice[str]] = None,
    ):
        await interaction.response.defer(ephemeral=True, thinking=True)
        response = await asyncio.to_thread(
            interaction.client.auth.resend_otp,
            email.strip(),
            purpose.value if purpose else "verification",
        )
        await interaction.followup.send(embed=response_embed(response), ephemeral=True)

    @bot.tree.command(name="set-password", description="Set the first password of a verified account.")
    @is_authorized()
    async def set_password(interaction: discord.Interaction, email: str):
        await interaction.response.send_modal(SetPasswordModal(email.strip()))

    @bot.tree.command(name="reset-password", description="Reset a forgotten password with the emailed OTP.")
    @is_authorized()
    async def reset_password(interaction: discord.Interaction, email: str):
        await interaction.response.send_modal(PasswordResetModal(email.strip()))

    for command in (
        login,
        logout,
        whoami,
        profile,
        profile_update,
        change_password,
        verify_email,
        resend_otp,
        set_password,
        reset_password,
    ):
        command.error(command_error)
