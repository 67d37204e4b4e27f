"""Application configuration loaded from defaults, the environment and files."""

import dataclasses
import json
import os
import re
import sys
import tomllib
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TextIO

import yaml

ENV_PREFIX = "CONFIG"

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INT_RE = re.compile(r"[+-]?\d+")


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded."""


def _opt(name: str, default: Any = None, *, factory: Any = None) -> Any:
    meta = {"name": name}
    if factory is not None:
        return field(default_factory=factory, metadata=meta)
    return field(default=default, metadata=meta)


@dataclass
class Menu:
    enable: bool = _opt("Enable", False)
    data: str = _opt("Data", "")


@dataclass
class Casbin:
    enable: bool = _opt("Enable", False)
    debug: bool = _opt("Debug", False)
    model: str = _opt("Model", "")
    auto_load: bool = _opt("AutoLoad", False)
    auto_load_internal: int = _opt("AutoLoadInternal", 0)


@dataclass
class Log:
    level: int = _opt("Level", 0)
    format: str = _opt("Format", "")
    output: str = _opt("Output", "")
    output_file: str = _opt("OutputFile", "")
    enable_hook: bool = _opt("EnableHook", False)
    hook_levels: list[str] = _opt("HookLevels", factory=list)
    hook: str = _opt("Hook", "")
    hook_max_thread: int = _opt("HookMaxThread", 0)
    hook_max_buffer: int = _opt("HookMaxBuffer", 0)
    rotation_count: int = _opt("RotationCount", 0)
    rotation_time: int = _opt("RotationTime", 0)

    def is_gorm_hook(self) -> bool:
        """True when log records are to be stored through the database hook."""
        return self.hook == "gorm"


@dataclass
class LogGormHook:
    db_type: str = _opt("DBType", "")
    max_lifetime: int = _opt("MaxLifetime", 0)
    max_open_conns: int = _opt("MaxOpenConns", 0)
    max_idle_conns: int = _opt("MaxIdleConns", 0)
    table: str = _opt("Table", "")


@dataclass
class LogMongoHook:
    collection: str = _opt("Collection", "")


@dataclass
class Root:
    user_id: int = _opt("UserID", 0)
    user_name: str = _opt("UserName", "")
    password: str = _opt("Password", "")
    real_name: str = _opt("RealName", "")


@dataclass
class JWTAuth:
    enable: bool = _opt("Enable", False)
    signing_method: str = _opt("SigningMethod", "")
    signing_key: str = _opt("SigningKey", "")
    expired: int = _opt("Expired", 0)
    store: str = _opt("Store", "")
    file_path: str = _opt("FilePath", "")
    redis_db: int = _opt("RedisDB", 0)
    redis_prefix: str = _opt("RedisPrefix", "")


@dataclass
class HTTP:
    host: str = _opt("Host", "")
    port: int = _opt("Port", 0)
    cert_file: str = _opt("CertFile", "")
    key_file: str = _opt("KeyFile", "")
    shutdown_timeout: int = _opt("ShutdownTimeout", 0)
    max_content_length: int = _opt("MaxContentLength", 0)
    max_req_logger_length: int = _opt("MaxReqLoggerLength", 1024)
    max_res_logger_length: int = _opt("MaxResLoggerLength", 0)


@dataclass
class Monitor:
    enable: bool = _opt("Enable", False)
    addr: str = _opt("Addr", "")
    config_dir: str = _opt("ConfigDir", "")


@dataclass
class Captcha:
    store: str = _opt("Store", "")
    length: int = _opt("Length", 0)
    width: int = _opt("Width", 0)
    height: int = _opt("Height", 0)
    redis_db: int = _opt("RedisDB", 0)
    redis_prefix: str = _opt("RedisPrefix", "")


@dataclass
class RateLimiter:
    enable: bool = _opt("Enable", False)
    count: int = _opt("Count", 0)
    redis_db: int = _opt("RedisDB", 0)


@dataclass
class CORS:
    enable: bool = _opt("Enable", False)
    allow_origins: list[str] = _opt("AllowOrigins", factory=list)
    allow_methods: list[str] = _opt("AllowMethods", factory=list)
    allow_headers: list[str] = _opt("AllowHeaders", factory=list)
    allow_credentials: bool = _opt("AllowCredentials", False)
    max_age: int = _opt("MaxAge", 0)


@dataclass
class GZIP:
    enable: bool = _opt("Enable", False)
    excluded_extentions: list[str] = _opt("ExcludedExtentions", factory=list)
    excluded_paths: list[str] = _opt("ExcludedPaths", factory=list)


@dataclass
class Redis:
    addr: str = _opt("Addr", "")
    password: str = _opt("Password", "")


@dataclass
class Gorm:
    debug: bool = _opt("Debug", False)
    db_type: str = _opt("DBType", "")
    max_lifetime: int = _opt("MaxLifetime", 0)
    max_open_conns: int = _opt("MaxOpenConns", 0)
    max_idle_conns: int = _opt("MaxIdleConns", 0)
    table_prefix: str = _opt("TablePrefix", "")
    enable_auto_migrate: bool = _opt("EnableAutoMigrate", False)


@dataclass
class MySQL:
    host: str = _opt("Host", "")
    port: int = _opt("Port", 0)
    user: str = _opt("User", "")
    password: str = _opt("Password", "")
    db_name: str = _opt("DBName", "")
    parameters: str = _opt("Parameters", "")

    def dsn(self) -> str:
        """Connection string in the MySQL driver's format."""
        return (
            f"{self.user}:{self.password}@tcp({self.host}:{self.port})"
            f"/{self.db_name}?{self.parameters}"
        )


@dataclass
class Postgres:
    host: str = _opt("Host", "")
    port: int = _opt("Port", 0)
    user: str = _opt("User", "")
    password: str = _opt("Password", "")
    db_name: str = _opt("DBName", "")
    ssl_mode: str = _opt("SSLMode", "")

    def dsn(self) -> str:
        """Connection string in libpq keyword/value form."""
        return (
            f"host={self.host} port={self.port} user={self.user} "
            f"dbname={self.db_name} password={self.password} sslmode={self.ssl_mode}"
        )


@dataclass
class Sqlite3:
    path: str = _opt("Path", "")

    def dsn(self) -> str:
        """The database file path."""
        return self.path


@dataclass
class Config:
    run_mode: str = _opt("RunMode", "")
    www: str = _opt("WWW", "")
    swagger: bool = _opt("Swagger", False)
    print_config: bool = _opt("PrintConfig", False)
    http: HTTP = _opt("HTTP", factory=HTTP)
    menu: Menu = _opt("Menu", factory=Menu)
    casbin: Casbin = _opt("Casbin", factory=Casbin)
    log: Log = _opt("Log", factory=Log)
    log_gorm_hook: LogGormHook = _opt("LogGormHook", factory=LogGormHook)
    log_mongo_hook: LogMongoHook = _opt("LogMongoHook", factory=LogMongoHook)
    root: Root = _opt("Root", factory=Root)
    jwt_auth: JWTAuth = _opt("JWTAuth", factory=JWTAuth)
    monitor: Monitor = _opt("Monitor", factory=Monitor)
    captcha: Captcha = _opt("Captcha", factory=Captcha)
    rate_limiter: RateLimiter = _opt("RateLimiter", factory=RateLimiter)
    cors: CORS = _opt("CORS", factory=CORS)
    gzip: GZIP = _opt("GZIP", factory=GZIP)
    redis: Redis = _opt("Redis", factory=Redis)
    gorm: Gorm = _opt("Gorm", factory=Gorm)
    mysql: MySQL = _opt("MySQL", factory=MySQL)
    postgres: Postgres = _opt("Postgres", factory=Postgres)
    sqlite3: Sqlite3 = _opt("Sqlite3", factory=Sqlite3)

    def is_debug_mode(self) -> bool:
        """True when the service runs in debug mode."""
        return self.run_mode == "debug"


def _key(name: str) -> str:
    return name.replace("_", "").replace("-", "").lower()


def _is_str_list(ftype: Any) -> bool:
    return typing.get_origin(ftype) is list


def _coerce(ftype: Any, value: Any, where: str) -> Any:
    if ftype is bool:
        if isinstance(value, bool):
            return value
    elif ftype is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif ftype is str:
        if isinstance(value, str):
            return value
    elif _is_str_list(ftype):
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return list(value)
    raise ConfigError(f"{where}: unexpected value {value!r}")


def _apply_mapping(target: Any, data: Any, where: str) -> None:
    if not isinstance(data, Mapping):
        raise ConfigError(f"{where}: expected a mapping, got {type(data).__name__}")
    by_key = {_key(k): v for k, v in data.items() if isinstance(k, str)}
    for f in dataclasses.fields(target):
        name = f.metadata["name"]
        value = by_key.get(_key(name))
        if value is None:
            continue
        path = f"{where}.{name}"
        if dataclasses.is_dataclass(f.type):
            _apply_mapping(getattr(target, f.name), value, path)
        else:
            setattr(target, f.name, _coerce(f.type, value, path))


def _parse_env(ftype: Any, value: str, name: str) -> Any:
    if ftype is bool:
        if value in _TRUE_WORDS:
            return True
        if value in _FALSE_WORDS:
            return False
    elif ftype is int:
        if _INT_RE.fullmatch(value):
            return int(value)
    elif _is_str_list(ftype):
        return value.split(",")
    else:
        return value
    raise ConfigError(f"environment variable {name}: invalid value {value!r}")


def _apply_env(target: Any, environ: Mapping[str, str], prefix: str) -> None:
    for f in dataclasses.fields(target):
        name = f"{prefix}_{_key(f.metadata['name']).upper()}"
        if dataclasses.is_dataclass(f.type):
            _apply_env(getattr(target, f.name), environ, name)
            continue
        value = environ.get(name, "")
        if value:
            setattr(target, f.name, _parse_env(f.type, value, name))


def _read_file(path: str) -> Any:
    try:
        if path.endswith("toml"):
            with open(path, "rb") as fh:
                return tomllib.load(fh)
        with open(path, encoding="utf-8") as fh:
            if path.endswith("json"):
                return json.load(fh)
            return yaml.safe_load(fh) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot parse {path}: {exc}") from exc


def load_config(*paths: str | os.PathLike[str], environ: Mapping[str, str] | None = None) -> Config:
    """Build a Config from defaults, then the environment, then each file in turn.

    Files are recognised by a name ending in ``toml``, ``json`` or ``yaml``;
    other paths are ignored.
    """
    config = Config()
    _apply_env(config, os.environ if environ is None else environ, ENV_PREFIX)
    for path in map(os.fspath, paths):
        if path.endswith(("toml", "json", "yaml")):
            _apply_mapping(config, _read_file(path), path)
    return config


def _to_dict(obj: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in dataclasses.fields(obj):
        value = getattr(obj, f.name)
        if dataclasses.is_dataclass(value):
            value = _to_dict(value)
        elif isinstance(value, list):
            value = list(value)
        out[f.metadata["name"]] = value
    return out


def config_to_json(config: Config) -> str:
    """Serialise the configuration as indented JSON keyed by setting names."""
    return json.dumps(_to_dict(config), indent=1, ensure_ascii=False)


def print_with_json(config: Config, stream: TextIO | None = None) -> None:
    """Write the configuration as JSON when ``print_config`` is set."""
    if config.print_config:
        (stream or sys.stdout).write(config_to_json(config) + "\n")