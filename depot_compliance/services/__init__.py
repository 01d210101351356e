"""
Сервисы для бизнес-логики
"""
