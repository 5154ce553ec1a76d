"""Pygame renderer for the warehouse detection demo.

Renders a top-down (x, z) view:
- Occupied cells of the robot's floor layer
- Boxes, highlighted when detected by the active model
- Planned path waypoints
- Robot pose and heading
- HUD with per-model process time and miss rate

Supports windowed (interactive) and headless modes. Returns frames for recording.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple

import numpy as np

try:
    import pygame
except ImportError:  # pragma: no cover - renderer optional in headless CI
    pygame = None


@dataclass
class VizConfig:
    size_px: Tuple[int, int] = (600, 600)
    show_grid_lines: bool = True
    fps: int = 60


class Renderer:
    def __init__(
        self,
        grid_size: int,
        viz_cfg: Optional[VizConfig] = None,
        display: bool = True,
    ) -> None:
        if pygame is None:
            raise RuntimeError("pygame not available; install pygame to use the renderer")
        self.viz = viz_cfg or VizConfig()
        self.grid_size = int(grid_size)
        self.width, self.height = self.viz.size_px
        self.scale = min(self.width, self.height) / float(self.grid_size)
        self.display = bool(display)

        pygame.init()
        if self.display:
            self.screen = pygame.display.set_mode((self.width, self.height))
        else:
            self.screen = pygame.Surface((self.width, self.height))
        pygame.display.set_caption("QINA Warehouse Demo")
        self.clock = pygame.time.Clock()
        pygame.font.init()
        self.font = pygame.font.SysFont("Arial", 14)

    def cell_center(self, x: float, z: float) -> Tuple[int, int]:
        # x to the right, z downwards; cell (i, k) spans [i, i+1) x [k, k+1)
        sx = int((x + 0.5) * self.scale)
        sy = int((z + 0.5) * self.scale)
        sx = max(0, min(self.width - 1, sx))
        sy = max(0, min(self.height - 1, sy))
        return sx, sy

    def draw_grid_lines(self) -> None:
        if not self.viz.show_grid_lines:
            return
        for k in range(self.grid_size + 1):
            p = int(k * self.scale)
            pygame.draw.line(self.screen, (60, 60, 60), (p, 0), (p, self.height), width=1)
            pygame.draw.line(self.screen, (60, 60, 60), (0, p), (self.width, p), width=1)

    def draw_occupancy(self, grid: np.ndarray, layer_y: int, color=(70, 70, 70)) -> None:
        layer = grid[:, layer_y, :]
        for i, k in np.argwhere(layer):
            rect = pygame.Rect(int(i * self.scale), int(k * self.scale), int(self.scale + 1), int(self.scale + 1))
            pygame.draw.rect(self.screen, color, rect)

    def draw_boxes(self, entities: Iterable, highlighted_ids: Iterable = ()) -> None:
        lit = set(highlighted_ids)
        for ent in entities:
            x, _, z = ent.position
            sx, sy = self.cell_center(x, z)
            half = int(0.35 * self.scale * float(ent.scale))
            color = (255, 235, 59) if ent.entity_id in lit else (76, 175, 80)
            rect = pygame.Rect(sx - half, sy - half, 2 * half, 2 * half)
            pygame.draw.rect(self.screen, color, rect, width=0)

    def draw_path(self, waypoints: Sequence[Tuple[int, int, int]]) -> None:
        for x, _, z in waypoints:
            pygame.draw.circle(self.screen, (33, 150, 243), self.cell_center(x, z), max(2, int(0.1 * self.scale)))

    def draw_robot(self, position: Tuple[float, float, float], heading: float) -> None:
        x, _, z = position
        sx, sy = self.cell_center(x, z)
        r_px = int(0.3 * self.scale)
        pygame.draw.circle(self.screen, (255, 82, 82), (sx, sy), r_px, width=0)
        hx = sx + int(1.5 * r_px * np.cos(heading))
        hy = sy + int(1.5 * r_px * np.sin(heading))
        pygame.draw.line(self.screen, (30, 30, 30), (sx, sy), (hx, hy), width=3)

    def draw_hud(self, text_lines: Dict[str, str], y0: int = 10) -> None:
        x = 10
        y = y0
        for k, v in text_lines.items():
            surf = self.font.render(f"{k}: {v}", True, (255, 255, 255))
            self.screen.blit(surf, (x, y))
            y += 18

    def render_frame(
        self,
        grid: np.ndarray,
        entities: Iterable,
        position: Tuple[float, float, float],
        heading: float,
        path: Optional[Sequence[Tuple[int, int, int]]] = None,
        highlighted_ids: Iterable = (),
        hud: Optional[Dict[str, str]] = None,
    ) -> "pygame.Surface":
        self.screen.fill((38, 50, 56))
        layer_y = min(self.grid_size - 1, max(0, int(np.floor(position[1]))))
        self.draw_occupancy(grid, layer_y)
        self.draw_grid_lines()
        self.draw_boxes(entities, highlighted_ids)
        if path:
            self.draw_path(path)
        self.draw_robot(position, heading)
        if hud:
            self.draw_hud(hud)
        if self.display:
            pygame.display.flip()
            self.clock.tick(self.viz.fps)
        return self.screen

    def poll_keys(self) -> Tuple[bool, Tuple[int, ...]]:
        """Return (keep_running, pressed key codes) for this frame."""
        keys = []
        if not self.display:
            return True, ()
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False, ()
            if event.type == pygame.KEYDOWN:
                keys.append(event.key)
        return True, tuple(keys)

    def close(self) -> None:
        try:
            if self.display and pygame is not None:
                pygame.display.quit()
            if pygame is not None:
                pygame.quit()
        except Exception:
            pass
