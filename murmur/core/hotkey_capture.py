"""
Global Hotkey Capture for Murmur

Parses a trigger string such as "ctrl+shift+space", registers it with a
key source, and turns the raw press/release stream into exactly one
down-callback per physical press and one up-callback per release.

Lock keys:
    Caps Lock and Num Lock set extra modifier bits on every key event. The
    key source grabs the combination once for each of the four lock states
    so the shortcut behaves the same whichever locks are on.

Unsupported platforms (e.g. Wayland compositors) make installation a
silent no-op: the callbacks simply never fire.
"""

from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Callable, FrozenSet, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class HotkeyError(ValueError):
    """Raised when a trigger string cannot be parsed."""


class ModifierMask(IntFlag):
    """Modifier bits, using the X11 core protocol values."""
    NONE = 0
    SHIFT = 1 << 0
    LOCK = 1 << 1      # Caps Lock
    CONTROL = 1 << 2
    MOD1 = 1 << 3      # Alt
    MOD2 = 1 << 4      # Num Lock
    MOD4 = 1 << 6      # Super


# Every lock state the shortcut has to survive
LOCK_COMBINATIONS: Tuple[ModifierMask, ...] = (
    ModifierMask.NONE,
    ModifierMask.LOCK,
    ModifierMask.MOD2,
    ModifierMask.LOCK | ModifierMask.MOD2,
)

MODIFIER_BITS = {
    'ctrl': ModifierMask.CONTROL,
    'shift': ModifierMask.SHIFT,
    'alt': ModifierMask.MOD1,
    'super': ModifierMask.MOD4,
}

MODIFIER_ALIASES = {
    'control': 'ctrl',
    'cmd': 'super',
    'meta': 'super',
}

NAMED_KEYS = {'space', 'enter', 'tab'}
FUNCTION_KEYS = {f'f{n}' for n in range(1, 13)}


@dataclass(frozen=True)
class HotkeySpec:
    """
    Parsed trigger: a set of modifier names plus one key symbol.

    Key symbols are normalized: named keys and function keys are lower
    case ("space", "f5"), single characters are kept as typed.
    """
    modifiers: FrozenSet[str]
    key: str

    @property
    def modifier_mask(self) -> ModifierMask:
        mask = ModifierMask.NONE
        for name in self.modifiers:
            mask |= MODIFIER_BITS[name]
        return mask

    def __str__(self) -> str:
        order = [m for m in ('ctrl', 'shift', 'alt', 'super') if m in self.modifiers]
        return '+'.join(order + [self.key])


def parse_trigger(trigger: str) -> HotkeySpec:
    """
    Parse a trigger string of the form (<modifier>+)*<key>.

    Args:
        trigger: e.g. "ctrl+shift+space", "alt+r", "F9"

    Returns:
        Parsed HotkeySpec

    Raises:
        HotkeyError: If the string is empty, names an unknown modifier,
            or ends in an unsupported key

    Examples:
        parse_trigger('ctrl+shift+space')  # modifiers {ctrl, shift}, key 'space'
        parse_trigger('super+F1')          # modifiers {super}, key 'f1'
    """
    if not trigger or not isinstance(trigger, str):
        raise HotkeyError("Hotkey trigger must be a non-empty string")

    parts = [part.strip() for part in trigger.split('+')]
    *modifier_parts, key_part = parts

    modifiers = set()
    for part in modifier_parts:
        name = part.lower()
        name = MODIFIER_ALIASES.get(name, name)
        if name not in MODIFIER_BITS:
            raise HotkeyError(
                f"Unknown modifier '{part}' in '{trigger}'. "
                f"Valid modifiers: {sorted(MODIFIER_BITS)}"
            )
        modifiers.add(name)

    return HotkeySpec(frozenset(modifiers), _normalize_key(key_part, trigger))


def _normalize_key(key: str, trigger: str) -> str:
    lowered = key.lower()
    if lowered in NAMED_KEYS or lowered in FUNCTION_KEYS:
        return lowered
    if len(key) == 1 and key.isprintable() and not key.isspace():
        return key
    raise HotkeyError(f"Unsupported key '{key}' in '{trigger}'")


class KeyEventType(Enum):
    PRESS = "press"
    RELEASE = "release"


@dataclass(frozen=True)
class KeyEvent:
    """Raw key event delivered by a key source."""
    type: KeyEventType
    keycode: object
    modifiers: int = 0


class HotkeyCapture:
    """
    Press/release edge detector for one registered shortcut.

    States:
        Released (initial) → Pressed on a matching press
        Pressed → Released on a matching release

    Key repeat produces extra press events while Pressed; those are
    swallowed so on_down fires once per physical press.

    Args:
        trigger: Trigger string, parsed immediately
        on_down: Called once when the shortcut goes down
        on_up: Called once when the shortcut comes back up

    Raises:
        HotkeyError: If the trigger string is invalid

    Note:
        handle_event() runs in the key source's delivery context. The
        pressed flag is never read or written anywhere else; callbacks
        should post to the overlay through the dispatcher.
    """

    def __init__(
        self,
        trigger: str,
        on_down: Optional[Callable[[], None]] = None,
        on_up: Optional[Callable[[], None]] = None
    ):
        self._spec = parse_trigger(trigger)
        self._on_down = on_down
        self._on_up = on_up

        self._keycode: Optional[object] = None
        self._required = self._spec.modifier_mask
        self._pressed = False
        self._key_source = None

    def install(self, key_source) -> bool:
        """
        Resolve the shortcut and grab it on key_source.

        Args:
            key_source: A KeySource (see murmur.core.key_sources)

        Returns:
            True if the shortcut is live, False if it degraded to a no-op
        """
        if not key_source.available:
            logger.warning(
                f"Global hotkeys unavailable ({key_source.name}); "
                f"'{self._spec}' will not be captured"
            )
            return False

        keycode = key_source.resolve(self._spec.key)
        if keycode is None:
            logger.warning(f"Cannot resolve key '{self._spec.key}' on {key_source.name}")
            return False

        self._keycode = keycode
        key_source.grab(keycode, self._required, self.handle_event)
        self._key_source = key_source

        logger.info(f"Hotkey '{self._spec}' registered via {key_source.name}")
        return True

    def uninstall(self) -> None:
        """Release the grab. Safe to call when not installed."""
        if self._key_source is None:
            return
        self._key_source.ungrab(self._keycode, self._required)
        logger.info(f"Hotkey '{self._spec}' unregistered")
        self._key_source = None
        self._keycode = None

    def handle_event(self, event: KeyEvent) -> bool:
        """
        Filter one raw key event.

        Args:
            event: Press or release from the key source

        Returns:
            True if the event belongs to the shortcut and was consumed,
            False if it should propagate unchanged
        """
        if self._keycode is None or event.keycode != self._keycode:
            return False

        if event.type is KeyEventType.PRESS:
            if (event.modifiers & self._required) != self._required:
                return False
            if not self._pressed:
                self._pressed = True
                logger.debug("Hotkey pressed")
                if self._on_down is not None:
                    self._on_down()
            return True

        if self._pressed:
            self._pressed = False
            logger.debug("Hotkey released")
            if self._on_up is not None:
                self._on_up()
        return True

    @property
    def spec(self) -> HotkeySpec:
        return self._spec

    @property
    def installed(self) -> bool:
        return self._key_source is not None

    @property
    def pressed(self) -> bool:
        return self._pressed

    def __repr__(self) -> str:
        return f"HotkeyCapture(trigger='{self._spec}', installed={self.installed})"
