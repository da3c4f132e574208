import os
import tomllib
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, ConfigDict, NonNegativeInt, PositiveFloat, PositiveInt, ValidationError, field_validator

from rpcprobe.errors import ConfigError
from rpcprobe.validators import validate_address, validate_block_hash, validate_block_number, validate_tx_hash

pkg_root = Path(__file__).parent
config_file = pkg_root / "config.toml"

# (toml section, toml key) -> (ProbeConfig field, environment variable)
SETTINGS = {
    ("rpc", "url"): ("rpc_url", "RPC_URL"),
    ("rpc", "timeout"): ("request_timeout", "RPC_TIMEOUT"),
    ("fixtures", "tx_hash"): ("tx_hash", "TEST_TX_HASH"),
    ("fixtures", "address"): ("address", "TEST_ADDRESS"),
    ("fixtures", "l1_batch_number"): ("l1_batch_number", "TEST_L1_BATCH_NUMBER"),
    ("fixtures", "block_number"): ("block_number", "TEST_BLOCK_NUMBER"),
    ("fixtures", "block_hash"): ("block_hash", "TEST_BLOCK_HASH"),
    ("fixtures", "message_index"): ("message_index", "TEST_MESSAGE_INDEX"),
    ("fixtures", "message_proof_address"): ("message_proof_address", "TEST_MESSAGE_PROOF_ADDRESS"),
    ("debug", "tracer"): ("tracer", "DEBUG_TRACER_TYPE"),
    ("pacing", "batch_size"): ("batch_size", "BATCH_SIZE"),
    ("pacing", "batch_delay_ms"): ("batch_delay_ms", "BATCH_DELAY_MS"),
    ("pacing", "max_requests_per_second"): ("max_requests_per_second", "MAX_REQUESTS_PER_SECOND"),
    ("logs", "dir"): ("log_dir", "LOG_DIR"),
}

SETTINGS_BY_FIELD = {name: var for name, var in SETTINGS.values()}

REQUIRED = ("rpc_url", "tx_hash", "address", "l1_batch_number")


class ProbeConfig(BaseModel):
    """Settings for one harness run. Built once at startup and passed down."""

    model_config = ConfigDict(frozen=True)

    rpc_url: str
    tx_hash: str
    address: str
    l1_batch_number: NonNegativeInt
    block_number: str | None = None
    block_hash: str | None = None
    message_index: NonNegativeInt = 0
    message_proof_address: str | None = None  # format checked by discovery, not here
    tracer: str = "callTracer"
    batch_size: PositiveInt = 10
    batch_delay_ms: NonNegativeInt = 1000
    max_requests_per_second: PositiveInt = 1000
    request_timeout: PositiveFloat = 30.0
    log_dir: Path = Path("logs")

    @field_validator("rpc_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"RPC URL must be http(s), got {v!r}")
        return v

    @field_validator("tx_hash")
    @classmethod
    def _check_tx_hash(cls, v: str) -> str:
        return validate_tx_hash(v)

    @field_validator("address")
    @classmethod
    def _check_address(cls, v: str) -> str:
        return validate_address(v)

    @field_validator("block_number")
    @classmethod
    def _check_block_number(cls, v: str | None) -> str | None:
        return None if v is None else validate_block_number(v)

    @field_validator("block_hash")
    @classmethod
    def _check_block_hash(cls, v: str | None) -> str | None:
        return None if v is None else validate_block_hash(v)

    @field_validator("tracer")
    @classmethod
    def _check_tracer(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("tracer name must not be empty")
        return v.strip()

    @property
    def has_block_override(self) -> bool:
        return self.block_number is not None and self.block_hash is not None


def read_defaults(path: Path | None = None) -> dict:
    """Flatten the TOML defaults into ProbeConfig field names."""
    cfg = tomllib.loads(Path(path or config_file).read_text())
    values = {}
    for (section, key), (name, _) in SETTINGS.items():
        value = cfg.get(section, {}).get(key)
        if value is not None:
            values[name] = value
    return values


def load_config(env: Mapping[str, str] | None = None, path: Path | None = None, **overrides) -> ProbeConfig:
    """Build the run configuration: TOML defaults < environment < keyword overrides.

    Empty strings count as unset. Raises ConfigError for anything missing or malformed.
    """
    env = os.environ if env is None else env
    values = read_defaults(path)
    for name, var in SETTINGS.values():
        if var in env:
            values[name] = env[var]
    values.update(overrides)
    values = {k: v for k, v in values.items() if not (isinstance(v, str) and not v.strip())}

    missing = [SETTINGS_BY_FIELD[name] for name in REQUIRED if name not in values]
    if missing:
        raise ConfigError(f"Missing required setting(s): {', '.join(missing)}")

    try:
        return ProbeConfig(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{SETTINGS_BY_FIELD.get(str(err['loc'][0]), err['loc'][0])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
