from dataclasses import dataclass

MIN_ZOOM = 0.1
MAX_ZOOM = 2.0
ZOOM_STEP = 0.1


def clamp_zoom(value: float) -> float:
    return round(min(max(MIN_ZOOM, value), MAX_ZOOM), 4)


@dataclass
class Viewport:
    """
    Pan/zoom state of the editor canvas.

    Canvas coordinates are node positions; screen coordinates are what the
    user sees: screen = canvas * zoom + offset.
    """
    zoom: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def __post_init__(self):
        self.zoom = clamp_zoom(self.zoom)

    @property
    def zoom_percent(self) -> int:
        return round(self.zoom * 100)

    def zoom_in(self) -> float:
        self.zoom = clamp_zoom(self.zoom + ZOOM_STEP)
        return self.zoom

    def zoom_out(self) -> float:
        self.zoom = clamp_zoom(self.zoom - ZOOM_STEP)
        return self.zoom

    def pan(self, dx: float, dy: float) -> None:
        self.offset_x += dx
        self.offset_y += dy

    def wheel(self, delta_x: float, delta_y: float, modifier: bool = False) -> None:
        """Wheel with the zoom modifier held zooms one step; a plain wheel pans."""
        if modifier:
            if delta_y > 0:
                self.zoom_out()
            elif delta_y < 0:
                self.zoom_in()
        else:
            self.pan(-delta_x, -delta_y)

    def to_screen(self, x: float, y: float) -> tuple:
        return (x * self.zoom + self.offset_x, y * self.zoom + self.offset_y)

    def to_canvas(self, screen_x: float, screen_y: float) -> tuple:
        return ((screen_x - self.offset_x) / self.zoom, (screen_y - self.offset_y) / self.zoom)

    def screen_delta_to_canvas(self, dx: float, dy: float) -> tuple:
        return (dx / self.zoom, dy / self.zoom)

    def transform(self) -> str:
        """SVG transform attribute for the canvas group."""
        return f"translate({self.offset_x:g} {self.offset_y:g}) scale({self.zoom:g})"
