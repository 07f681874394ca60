from ..settings import Settings


class DevelopmentSettings(Settings):
    debug: bool = True
    log_json: bool = False
    log_level: str = "DEBUG"
    database_url: str = "duckdb://./chatravasa/data/chatravasa_dev.duckdb"
