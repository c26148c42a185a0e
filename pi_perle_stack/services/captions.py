# -*- coding: utf-8 -*-
"""Caption text for published perle."""

import random
from typing import Optional, Sequence

CAPTION_INTROS = (
    "Le perle del giorno dai gruppi classe! 💎😂",
    "Quando le mamme del gruppo WhatsApp si scatenano... 📱",
    "Le chat scolastiche be like... 🎒📚",
    "Gruppo classe, sempre una sorpresa! 🤦‍♀️",
    "Le perle dai gruppi scuola che non ti aspetti! 💬",
)


def build_caption(
    hashtags: Sequence[str] = (),
    rng: Optional[random.Random] = None,
) -> str:
    """Random intro line followed by the configured hashtags."""
    intro = (rng or random).choice(CAPTION_INTROS)
    tags = " ".join(tag if tag.startswith("#") else f"#{tag}" for tag in hashtags)
    return f"{intro}\n\n{tags}" if tags else intro
