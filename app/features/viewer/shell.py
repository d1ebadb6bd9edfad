"""
➡️ But : Produire la surface de lecture envoyée au navigateur, avec ses protections.

Un seul contrat (ViewerShell), deux implémentations choisies par `ViewerConfig.mode` :
- InlineVideoShell   : page de lecture directe (<video>, <img> ou <object>) ;
- IsolatedFrameShell : la même page, placée dans un <iframe sandbox="allow-scripts" srcdoc=...>
                       que la page hôte ne peut ni inspecter ni modifier.

Toutes deux appliquent : blocage du plein écran (sauf admin), du clic droit, du glisser/copier,
des raccourcis clavier ; filigrane en mosaïque si demandé ; renouvellement du token avant expiration.

🔹 La configuration est passée explicitement (ViewerConfig), jamais lue dans un état global.
🔹 Ce n'est pas un DRM : on rend l'extraction plus coûteuse, on ne l'empêche pas.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.db.models.users import ROLE_ADMIN
from app.features.streaming.schemas import StreamTicketOut

TEMPLATES_DIR = Path(__file__).parent / "templates"

MODE_ISOLATED = "isolated"
MODE_INLINE = "inline"

# Capacités annoncées par chaque implémentation
ISOLATION = "isolation"
FULLSCREEN_LOCK = "fullscreen-lock"
CONTEXT_MENU_BLOCK = "context-menu-block"
DRAG_COPY_BLOCK = "drag-copy-block"
SHORTCUT_BLOCK = "shortcut-block"
TILED_WATERMARK = "tiled-watermark"
TOKEN_RENEWAL = "token-renewal"
SAFE_FALLBACK = "safe-fallback"

WATERMARK_OPACITY = 0.15


@dataclass(frozen=True)
class ViewerConfig:
    role: str
    watermark_required: bool
    allow_fullscreen: bool
    mode: str = MODE_ISOLATED
    watermark_label: str = ""
    watermark_tiles: int = 12
    refresh_margin_seconds: int = 60
    base_url: str = ""

    @classmethod
    def for_ticket(
        cls,
        ticket: StreamTicketOut,
        *,
        watermark_label: str,
        mode: str = MODE_ISOLATED,
        watermark_tiles: int = 12,
        refresh_margin_seconds: int = 60,
        base_url: str = "",
    ) -> "ViewerConfig":
        return cls(
            role=ticket.role,
            watermark_required=ticket.watermark_required,
            allow_fullscreen=ticket.role == ROLE_ADMIN,
            mode=mode,
            watermark_label=watermark_label,
            watermark_tiles=watermark_tiles,
            refresh_margin_seconds=refresh_margin_seconds,
            base_url=base_url.rstrip("/"),
        )


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def watermark_grid(tiles: int) -> Dict[str, int]:
    """Grille plus large que haute (format vidéo), couvrant toute la surface."""
    tiles = max(tiles, 1)
    columns = max(1, min(tiles, math.ceil(math.sqrt(tiles * 16 / 9))))
    rows = math.ceil(tiles / columns)
    return {"columns": columns, "rows": rows}


class ViewerShell(ABC):
    mode: str
    capabilities: FrozenSet[str]

    def __init__(self, config: ViewerConfig, env: Optional[Environment] = None):
        self.config = config
        self.env = env or _environment()

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    def _player_context(self, ticket: StreamTicketOut) -> Dict[str, Any]:
        cfg = self.config
        base = cfg.base_url
        poster = f"{base}{ticket.thumbnail_url}" if ticket.thumbnail_url and ticket.thumbnail_url.startswith("/") else ticket.thumbnail_url
        return {
            "title": ticket.title,
            "role": cfg.role,
            "media_type": ticket.media_type,
            "content_type": ticket.content_type,
            "stream_url": f"{base}{ticket.stream_url}",
            "poster": poster,
            "allow_fullscreen": cfg.allow_fullscreen,
            "guard": {"allowFullscreen": cfg.allow_fullscreen},
            "watermark": {
                "required": cfg.watermark_required,
                "label": cfg.watermark_label,
                "tiles": cfg.watermark_tiles,
                "opacity": WATERMARK_OPACITY,
                **watermark_grid(cfg.watermark_tiles),
            },
            "playback": {
                "baseUrl": base,
                "refreshUrl": f"{base}{ticket.refresh_url}",
                "expiresAt": int(ticket.expires_at.timestamp() * 1000),
                "refreshMarginMs": cfg.refresh_margin_seconds * 1000,
            },
        }

    def render_player(self, ticket: StreamTicketOut) -> str:
        return self.env.get_template("player.html").render(**self._player_context(ticket))

    @abstractmethod
    def render(self, ticket: StreamTicketOut) -> str:
        """Document HTML complet à servir au navigateur."""


class InlineVideoShell(ViewerShell):
    mode = MODE_INLINE
    capabilities = frozenset({
        FULLSCREEN_LOCK,
        CONTEXT_MENU_BLOCK,
        DRAG_COPY_BLOCK,
        SHORTCUT_BLOCK,
        TILED_WATERMARK,
        TOKEN_RENEWAL,
    })

    def render(self, ticket: StreamTicketOut) -> str:
        return self.render_player(ticket)


class IsolatedFrameShell(ViewerShell):
    mode = MODE_ISOLATED
    capabilities = InlineVideoShell.capabilities | {ISOLATION, SAFE_FALLBACK}

    # délai avant de considérer que le cadre isolé n'a pas démarré
    isolation_timeout_ms = 5000

    def render(self, ticket: StreamTicketOut) -> str:
        return self.env.get_template("isolated.html").render(
            title=ticket.title,
            allow_fullscreen=self.config.allow_fullscreen,
            guard={"allowFullscreen": self.config.allow_fullscreen},
            player_document=self.render_player(ticket),
            isolation_timeout_ms=self.isolation_timeout_ms,
        )


_SHELLS = {
    MODE_INLINE: InlineVideoShell,
    MODE_ISOLATED: IsolatedFrameShell,
}


def build_shell(config: ViewerConfig, env: Optional[Environment] = None) -> ViewerShell:
    try:
        shell_cls = _SHELLS[config.mode]
    except KeyError:
        raise ValueError(f"Unknown viewer mode: {config.mode!r}")
    return shell_cls(config, env)
