
from pydantic import BaseModel, Field
from typing import Optional, Dict, Union
import yaml, pathlib

class ReportsConfig(BaseModel):
    directory: str = Field("reports", description="Directory the TEST-*.xml files are written to")
    hostname: Optional[str] = Field(None, description="Overrides the captured host name")
    include_environment: bool = Field(False, description="Add env.* properties from os.environ")
    properties: Dict[str, str] = Field(default_factory=dict)

class RunnerConfig(BaseModel):
    parallelism: int = Field(1, ge=1, description="Worker threads for sibling tests")

class AppConfig(BaseModel):
    log_level: str = Field("INFO")
    reports: ReportsConfig = Field(default_factory=ReportsConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)

def load_config(path: Optional[Union[str, pathlib.Path]] = None) -> AppConfig:
    if path is None:
        return AppConfig()
    data = yaml.safe_load(pathlib.Path(path).read_text()) or {}
    return AppConfig.model_validate(data)
