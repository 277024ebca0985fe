from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import ValidationError
from .pricing import validate_contingency
from .reporting import DEFAULT_DATE_RANGE

_FLAG_VALUES = {"1": True, "true": True, "yes": True, "on": True, "0": False, "false": False, "no": False, "off": False}


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    base_dir: Path
    store_path: Path
    output_dir: Path
    default_contingency: float = 10.0
    date_range: str = DEFAULT_DATE_RANGE
    owner_id: Optional[str] = None
    include_charts: bool = True
    verbose: bool = False


def _path_setting(value: object | None, default: Path) -> Path:
    text = str(value).strip() if value is not None else ""
    return Path(text).expanduser().resolve() if text else default


def _text_setting(value: object | None) -> Optional[str]:
    text = str(value).strip() if value is not None else ""
    return text or None


def _env_flag(env: Mapping[str, str], name: str) -> bool:
    raw = (env.get(name) or "").strip().lower()
    if not raw:
        return False
    if raw not in _FLAG_VALUES:
        raise ValidationError(f"{name} must be a yes/no flag, got {env[name]!r}")
    return _FLAG_VALUES[raw]


def _contingency_setting(value: Optional[str]) -> float:
    text = (value or "").replace("%", "").strip()
    return validate_contingency(text or 10.0)


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options.

    ``cli_args`` is an argparse namespace (or any object with the same
    attributes); options it sets win over ``PROJEST_*`` variables. The default
    contingency must lie in ``[0, 100]`` and flags must read as yes/no;
    anything else raises :class:`~projest.errors.ValidationError`.
    """

    base_dir = Path.cwd().resolve()

    def option(name: str) -> object:
        return getattr(cli_args, name, None)

    store_path = _path_setting(env.get("PROJEST_STORE"), base_dir / "projest_store.json")
    store_path = _path_setting(option("store"), store_path)
    output_dir = _path_setting(env.get("PROJEST_OUTPUT_DIR"), base_dir / "outputs")
    output_dir = _path_setting(option("output_dir"), output_dir)
    date_range = _text_setting(option("range")) or _text_setting(env.get("PROJEST_DATE_RANGE")) or DEFAULT_DATE_RANGE

    return Config(
        base_dir=base_dir,
        store_path=store_path,
        output_dir=output_dir,
        default_contingency=_contingency_setting(env.get("PROJEST_DEFAULT_CONTINGENCY")),
        date_range=date_range.lower(),
        owner_id=_text_setting(option("owner")) or _text_setting(env.get("PROJEST_OWNER")),
        include_charts=not (option("no_charts") or _env_flag(env, "PROJEST_DISABLE_CHARTS")),
        verbose=bool(option("verbose")) or _env_flag(env, "PROJEST_VERBOSE"),
    )


__all__ = ["Config", "load_config"]
