from typing import Dict

from pydantic import BaseModel, Field, field_validator
import yaml

class EnvCfg(BaseModel):
    log_dir: str = "./logs"
    log_level: str = "INFO"

class MarketApiCfg(BaseModel):
    base_url: str = "https://api.deversifi.com/bfx/v2/book"
    symbol: str = "tETHUSD"
    precision: str = "P0"
    timeout_sec: float = 15.0
    user_agent: str = "Mozilla/5.0"

class BotCfg(BaseModel):
    start_balance: Dict[str, float] = Field(default_factory=lambda: {"ETH": 10.0, "USD": 2000.0})
    refresh_ms: int = Field(default=5000, gt=0)
    report_ms: int = Field(default=30000, gt=0)
    reserved_pct: float = Field(default=0.05, ge=0, lt=1)

    @field_validator("start_balance")
    @classmethod
    def _needs_eth_and_usd(cls, v: Dict[str, float]) -> Dict[str, float]:
        missing = [s for s in ("ETH", "USD") if s not in v]
        if missing:
            raise ValueError(f"start_balance is missing {', '.join(missing)}")
        return v

class BotConfig(BaseModel):
    env: EnvCfg = Field(default_factory=EnvCfg)
    market_api: MarketApiCfg = Field(default_factory=MarketApiCfg)
    bot: BotCfg = Field(default_factory=BotCfg)

def load_config(path: str) -> BotConfig:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return BotConfig(**data)
