from facility_siting.config.config_loader import Config, load_config

__all__ = ['Config', 'load_config']
