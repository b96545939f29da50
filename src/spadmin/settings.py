import tempfile
from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SPADMIN_", env_file=".env", extra="ignore")

    temp_dir: str = Field(default_factory=tempfile.gettempdir)

    status_ttl_minutes: int = 15
    log_lookback_minutes: int = 15
    merge_window_minutes: int = 10

    log_category: str = Field(default="merge-trigger")
    merge_event_ids: list[str] = Field(default_factory=lambda: ["aie8l", "aie8m"])

    # drive-letter paths are mapped to admin shares through unc_template
    default_index_root: str = Field(
        default=r"C:\Program Files\Microsoft Office Servers\15.0\Data\Office Server\Applications"
    )
    unc_template: str = Field(default=r"\\{server}\{drive}$\{path}")
    index_path_template: str = Field(default=r"{root}\Search\Nodes\{constellation}\{component}")
    cell_folder_template: str = Field(default="SP{constellation}")
    index_process_name: str = Field(default="noderunner.exe")
    index_component_marker: str = Field(default="IndexComponent")

    gateway_timeout: float = 120.0
    links_list_title: str = Field(default="Service Applications")

    @property
    def status_ttl(self) -> timedelta:
        return timedelta(minutes=self.status_ttl_minutes)

    @property
    def log_lookback(self) -> timedelta:
        return timedelta(minutes=self.log_lookback_minutes)

    @property
    def merge_window(self) -> timedelta:
        return timedelta(minutes=self.merge_window_minutes)

settings = Settings()
