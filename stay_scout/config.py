# === FILE: stay_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации сервера StayScout.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import json
import os
import errno
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
)

DECLARED_USER_AGENT = (
    "ModelContextProtocol/1.0 (Autonomous; +https://github.com/modelcontextprotocol/servers)"
)
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

Identity = Literal["declared", "browser"]


class ServerConfig(BaseModel):
    """Конфигурация одного процесса сервера."""
    model_config = ConfigDict(extra="forbid", frozen=True, validate_default=True)

    base_url: HttpUrl = Field("https://www.airbnb.com", description="Корневой URL сайта объявлений.")
    user_agent: str = Field(DECLARED_USER_AGENT, min_length=1, description="Заявленный User-Agent (robots.txt).")
    browser_user_agent: str = Field(BROWSER_USER_AGENT, min_length=1, description="User-Agent обычного браузера.")
    identity: Identity = Field("declared", description="Идентичность для страниц объявлений и поиска.")
    photo_identity: Identity = Field("browser", description="Идентичность для страниц с фотографиями.")
    timeout: float = Field(30.0, gt=0, description="Таймаут на загрузку страницы (секунд).")
    robots_timeout: float = Field(10.0, gt=0, description="Таймаут на загрузку robots.txt (секунд).")
    accept_language: str = Field("en-US,en;q=0.9", description="Заголовок Accept-Language.")
    ignore_robots_txt: bool = Field(False, description="Глобально отключить проверку robots.txt.")
    data_island_id: str = Field("data-deferred-state-0", min_length=1, description="id тега <script> с данными.")
    max_photos: int = Field(50, ge=1, description="Максимум URL фотографий в ответе.")
    photo_markers: Tuple[str, ...] = Field(
        ("airbnb", "muscache"), description="Фрагменты src, по которым <img> считается фото объявления."
    )
    strict_photo_alt: bool = Field(True, description="Требовать 'photo'/'image' в alt при разборе <img>.")

    @field_validator("base_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @property
    def origin(self) -> str:
        """base_url без завершающего слеша, пригодный для склейки путей."""
        return str(self.base_url).rstrip("/")

    def user_agent_for(self, identity: Optional[Identity]) -> str:
        """Возвращает строку User-Agent для заданного режима идентичности."""
        mode = identity or self.identity
        return self.browser_user_agent if mode == "browser" else self.user_agent


_DEFAULT_CFG = Path("configs/default.yaml")
_TRUTHY = {"1", "true", "yes", "on"}


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> ServerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ServerConfig.
    Без пути использует configs/default.yaml, а при его отсутствии значения по умолчанию.
    Явно указанный, но отсутствующий файл приводит к FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return ServerConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    try:
        return ServerConfig(**data)
    except ValidationError:
        raise


def apply_env(cfg: ServerConfig, environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """Накладывает переменные окружения (IGNORE_ROBOTS_TXT) поверх конфига."""
    env = os.environ if environ is None else environ
    raw = env.get("IGNORE_ROBOTS_TXT")
    if raw is not None and raw.strip().lower() in _TRUTHY:
        return cfg.model_copy(update={"ignore_robots_txt": True})
    return cfg
