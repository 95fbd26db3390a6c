"""Text and image rendering for 1D cellular automata."""

import numpy as np
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

try:
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

from PIL import Image

from .automaton import DIGITS, CellularAutomaton, Rule
from .errors import IncompleteSymbolMap

DEFAULT_SYMBOLS = " #@"

Symbols = Union[str, Sequence[str], Mapping[int, str]]

# Color palettes for visualization
PALETTES = {
    2: [
        (20, 20, 30),      # State 0: Dark
        (255, 255, 255),   # State 1: White
    ],
    3: [
        (20, 20, 30),      # State 0: Dark
        (0, 212, 255),     # State 1: Cyan
        (255, 107, 107),   # State 2: Coral
    ],
    4: [
        (20, 20, 30),      # State 0: Dark
        (0, 212, 255),     # State 1: Cyan
        (255, 107, 107),   # State 2: Coral
        (255, 230, 109),   # State 3: Yellow
    ],
    5: [
        (20, 20, 30),      # State 0: Dark
        (0, 212, 255),     # State 1: Cyan
        (107, 255, 148),   # State 2: Green
        (255, 230, 109),   # State 3: Yellow
        (255, 107, 107),   # State 4: Coral
    ],
}


def _symbol_map(symbols: Symbols) -> Dict[int, str]:
    if isinstance(symbols, Mapping):
        return {int(state): str(symbol) for state, symbol in symbols.items()}
    return {state: str(symbol) for state, symbol in enumerate(symbols)}


def render_state(
    state: Sequence[int],
    symbols: Symbols = DIGITS,
    num_states: Optional[int] = None,
) -> str:
    """
    Render a state vector as one line of text, one symbol per cell.

    `symbols` maps state i to symbols[i]; a string, list or dict all work.
    Raises IncompleteSymbolMap if a state in [0, num_states) or in the vector
    has no symbol.
    """
    mapping = _symbol_map(symbols)

    if num_states is not None:
        missing = [s for s in range(num_states) if s not in mapping]
        if missing:
            raise IncompleteSymbolMap(
                f"Symbol map covers {len(mapping)} states but {num_states} are needed "
                f"(missing {missing[0]})"
            )

    cells = np.asarray(state).tolist()
    unmapped = sorted({c for c in cells if c not in mapping})
    if unmapped:
        raise IncompleteSymbolMap(f"No symbol for state {unmapped[0]}")

    return "".join(mapping[c] for c in cells)


def render_history(
    history: List[np.ndarray],
    symbols: Symbols = DIGITS,
    num_states: Optional[int] = None,
) -> str:
    """Render generations as lines of text, oldest first."""
    return "\n".join(render_state(state, symbols, num_states) for state in history)


def palette_for(num_states: int) -> List[tuple]:
    """Colors for each state; unknown state counts fall back to gray for the extra states."""
    palette = list(PALETTES.get(num_states, PALETTES[5]))[:num_states]
    while len(palette) < num_states:
        palette.append((128, 128, 128))
    return palette


def render_spacetime(
    history: List[np.ndarray],
    cell_size: int = 4,
    num_states: Optional[int] = None,
) -> np.ndarray:
    """Render a run as an RGB space-time diagram, one row per generation."""
    grid = np.stack([np.asarray(state) for state in history])
    if num_states is None:
        num_states = max(2, int(grid.max()) + 1)
    palette = palette_for(num_states)

    h, w = grid.shape
    img = np.zeros((h * cell_size, w * cell_size, 3), dtype=np.uint8)

    for state in range(num_states):
        color = np.array(palette[state], dtype=np.uint8)
        mask = (grid == state)
        upscaled = np.repeat(np.repeat(mask, cell_size, axis=0), cell_size, axis=1)
        img[upscaled] = color

    return img


def save_image(
    history: List[np.ndarray],
    filepath: str,
    cell_size: int = 4,
    num_states: Optional[int] = None,
):
    """Save a run as a PNG space-time diagram."""
    img_array = render_spacetime(history, cell_size, num_states)
    img = Image.fromarray(img_array)
    img.save(filepath)


def display_history(history: List[np.ndarray], title: str = "Cellular Automaton"):
    """Display a run using matplotlib (for interactive use)."""
    if not HAS_MATPLOTLIB:
        raise ImportError("Matplotlib required for display. Install with: pip install matplotlib")

    plt.figure(figsize=(10, 6))
    plt.imshow(np.stack(history), cmap="viridis", interpolation="nearest", aspect="auto")
    plt.title(title)
    plt.xlabel("cell")
    plt.ylabel("generation")
    plt.tight_layout()
    plt.show()


def visualize_rule(
    rule: Rule,
    width: int = 145,
    steps: int = 73,
    output_dir: str = "output",
    init: str = "center",
    cell_size: int = 4,
    seed: Optional[int] = None,
) -> str:
    """
    Run a rule from a centre seed or a random ring and save the space-time PNG.

    Returns:
        Path of the saved image
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    ca = CellularAutomaton(rule, width=width)
    if init == "random":
        ca.randomize(np.random.default_rng(seed))
    else:
        ca.seed_center()

    history = ca.run(steps)

    image_path = str(output_path / f"rule{rule.to_decimal()}_k{rule.num_states}_n{len(rule.neighbourhood)}.png")
    save_image(history, image_path, cell_size=cell_size, num_states=rule.num_states)
    return image_path
