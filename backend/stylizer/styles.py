"""
Closed set of artistic styles offered to users.

Each style maps to the literal instruction sent to the image provider.
Unknown style names are rejected at the request boundary.
"""
from enum import Enum
from typing import Optional


class Style(str, Enum):
    ANIME = "Anime Style"
    PICASSO = "Picasso Style"
    OIL_PAINTING = "Oil Painting Style"
    FRIDA = "Frida Style"
    MINIATURE = "Miniature Effect"

    @property
    def prompt(self) -> str:
        return STYLE_PROMPTS[self]

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["Style"]:
        """Return the style with this display name, or None if there is none."""
        if not name:
            return None
        try:
            return cls(name.strip())
        except ValueError:
            return None


STYLE_PROMPTS = {
    Style.ANIME: (
        "Using the provided image of this person, transform this portrait into pretty, anime style."
    ),
    Style.PICASSO: (
        "Using the provided image of this person, transform this portrait into Picasso painting style."
    ),
    Style.OIL_PAINTING: (
        "Using the provided image of this person, transform this portrait into the style of a "
        "Degas oil painting."
    ),
    Style.FRIDA: (
        "Using the provided image of this person, transform this portrait into Frida Kahlo "
        "painting style."
    ),
    Style.MINIATURE: (
        "Create a 1/7 scale commercialized figure of the character in the illustration, in a "
        "realistic style and environment. Place the figure on a computer desk, using a circular "
        "transparent acrylic base without any text. On the computer screen, display the ZBrush "
        "modeling process of the figure. Next to the computer screen, place a BANDAI-style toy "
        "packaging box printed with the original artwork."
    ),
}
