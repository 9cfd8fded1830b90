"""Модуль конфигурации.

Для загрузки настроек используйте:
    from src.config.settings import load_settings

Для использования только классов настроек (без чтения окружения):
    from src.config.models import ImageProvidersSettings
"""
