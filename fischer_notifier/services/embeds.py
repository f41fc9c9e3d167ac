"""Discord embed builders for appointment and status messages"""
from datetime import datetime
from enum import Enum
from typing import Union
import discord
import pytz

from ..storage.models import Appointment

FOOTER_TEXT = "Fischerprüfungs-Crawler"


class EmbedColor(Enum):
    """Embed colours by message category"""
    SUCCESS = 0x2ECC71
    ERROR = 0xE74C3C
    WARNING = 0xF1C40F
    INFO = 0x3498DB
    DEFAULT = 0x0099FF

    @classmethod
    def resolve(cls, color: Union["EmbedColor", str, int]) -> int:
        """Colour value for an EmbedColor, its name ('info') or a raw int"""
        if isinstance(color, EmbedColor):
            return color.value
        if isinstance(color, str):
            try:
                return cls[color.upper()].value
            except KeyError:
                return cls.DEFAULT.value
        if isinstance(color, int):
            return color
        return cls.DEFAULT.value


def _timestamped(embed: discord.Embed) -> discord.Embed:
    embed.timestamp = datetime.now(pytz.UTC)
    return embed


def create_appointment_embed(
    appointment: Appointment,
    is_new: bool = False,
    color: Union[EmbedColor, str, int] = EmbedColor.DEFAULT
) -> discord.Embed:
    """
    Build the embed card for one appointment

    New appointments are always shown in red, regardless of color.
    """
    emoji = "🆕" if is_new else "🎣"
    title = f"{emoji} Fischerprüfungstermin (NEU)" if is_new else f"{emoji} Fischerprüfungstermin"

    embed = discord.Embed(
        title=title,
        url=appointment.url or None,
        colour=EmbedColor.ERROR.value if is_new else EmbedColor.resolve(color)
    )

    if appointment.pruefungsort:
        location = appointment.pruefungsort
        if appointment.landkreis:
            location += f" ({appointment.landkreis})"
    else:
        location = "Keine Ortsangabe"

    embed.add_field(name="📅 Termin", value=appointment.termin or "Kein Datum angegeben", inline=True)
    embed.add_field(name="🏢 Prüfungsstelle", value=appointment.pruefungsstelle or "Keine Angabe", inline=True)
    embed.add_field(name="📍 Ort", value=location, inline=True)
    embed.set_footer(text=FOOTER_TEXT)
    return _timestamped(embed)


def create_status_embed(
    title: str,
    description: str,
    color: Union[EmbedColor, str, int] = EmbedColor.INFO
) -> discord.Embed:
    """Build a status embed (errors, maintenance results, tests)"""
    embed = discord.Embed(
        title=title,
        description=description,
        colour=EmbedColor.resolve(color)
    )
    embed.set_footer(text=FOOTER_TEXT)
    return _timestamped(embed)
