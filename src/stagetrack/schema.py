"""Table definitions and the default project template."""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, Iterable, List

from .store import Store

logger = logging.getLogger(__name__)

DEFAULT_ICON = "📋"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS stages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    number INTEGER,
    name TEXT,
    icon TEXT,
    weeks TEXT,
    hours INTEGER,
    cost INTEGER,
    status TEXT,
    brief TEXT,
    description TEXT,
    progress INTEGER DEFAULT 0,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    stage_id INTEGER,
    text TEXT,
    completed BOOLEAN DEFAULT 0,
    position INTEGER DEFAULT 0,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (stage_id) REFERENCES stages(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_stage_status ON stages(status);
CREATE INDEX IF NOT EXISTS idx_task_stage ON tasks(stage_id);
"""

INSERT_STAGE_SQL = """
INSERT INTO stages (number, name, icon, weeks, hours, cost, status, brief, description, progress)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

INSERT_TASK_SQL = """
INSERT INTO tasks (stage_id, text, completed, position)
VALUES (?, ?, ?, ?)
"""


def _task(text: str, completed: bool = False) -> Dict[str, Any]:
    return {"text": text, "completed": completed}


DEFAULT_STAGES: List[Dict[str, Any]] = [
    {
        "number": 1,
        "name": "Архитектура + базовое AI-ядро",
        "icon": "🏗️",
        "weeks": "Недели 1-3",
        "hours": 160,
        "cost": 383000,
        "status": "complete",
        "progress": 100,
        "brief": "Спроектирован сервис, готово ядро NLP-анализа",
        "description": "Разработана полная архитектура системы и реализовано базовое AI-ядро для обработки тендерной документации.",
        "tasks": [
            _task("Спроектирована модульная архитектура системы", True),
            _task("Настроена интеграция с OpenAI GPT-4", True),
            _task("Реализовано ядро NLP-анализа документов", True),
            _task("Создана база знаний по 44-ФЗ/223-ФЗ", True),
            _task("Настроена обработка естественного языка", True),
        ],
    },
    {
        "number": 2,
        "name": "Модуль анализа закупки",
        "icon": "🔍",
        "weeks": "Недели 3-4",
        "hours": 80,
        "cost": 191000,
        "status": "progress",
        "progress": 85,
        "brief": "Парсер извещений, формирование структуры данных закупки",
        "description": "Модуль для автоматического анализа закупочной документации и извлечения ключевых параметров.",
        "tasks": [
            _task("Реализован парсер извещений о закупках", True),
            _task("Настроено извлечение требований из документации", True),
            _task("Создана структура данных для хранения информации о закупке", True),
            _task("Реализован анализ критериев оценки заявок", True),
            _task("Доработать алгоритм оценки рисков"),
            _task("Улучшить точность извлечения сроков"),
        ],
    },
    {
        "number": 3,
        "name": "Интеграции (ЕИС, платежи, Telegram)",
        "icon": "🔗",
        "weeks": "Недели 5-6",
        "hours": 160,
        "cost": 363000,
        "status": "progress",
        "progress": 60,
        "brief": "Подключены внешние API, кэширование и обработка ошибок",
        "description": "Интеграция с государственными системами и внешними сервисами.",
        "tasks": [
            _task("Реализована интеграция с SOAP API ЕИС", True),
            _task("Настроено получение данных о закупках", True),
            _task("Реализовано кэширование данных", True),
            _task("Настроена обработка ошибок API", True),
            _task("Интегрировать платежный шлюз ЮKassa"),
            _task("Подключить Telegram Bot API"),
            _task("Настроить email-рассылку"),
            _task("Реализовать SMS-уведомления"),
        ],
    },
    {
        "number": 4,
        "name": "Интерфейс (кабинет + админ-панель)",
        "icon": "💻",
        "weeks": "Недели 7-8",
        "hours": 136,
        "cost": 268000,
        "status": "progress",
        "progress": 70,
        "brief": "Адаптивный веб-UI, формы, навигация",
        "description": "Разработка пользовательского интерфейса и административной панели.",
        "tasks": [
            _task("Создан адаптивный дизайн интерфейса", True),
            _task("Реализована система навигации", True),
            _task("Разработаны основные формы ввода", True),
            _task("Создан личный кабинет пользователя", True),
            _task("Реализована часть админ-панели", True),
            _task("Доработать раздел статистики"),
            _task("Завершить панель супер-администратора"),
            _task("Добавить раздел маркетинговой аналитики"),
        ],
    },
    {
        "number": 5,
        "name": "Чат-бот (LLM + Telegram)",
        "icon": "💬",
        "weeks": "Недели 8-9",
        "hours": 64,
        "cost": 142000,
        "status": "pending",
        "progress": 0,
        "brief": "Диалог <5 с, привязка аккаунта",
        "description": "Интеллектуальный чат-бот для консультаций и поддержки пользователей.",
        "tasks": [
            _task("Разработать архитектуру чат-бота"),
            _task("Реализовать NLP-обработку запросов"),
            _task("Настроить WebSocket для веб-версии"),
            _task("Интегрировать Telegram Bot API"),
            _task("Реализовать привязку аккаунтов"),
            _task("Обучить модель на FAQ"),
        ],
    },
    {
        "number": 6,
        "name": "PDF-экспорт документов",
        "icon": "📄",
        "weeks": "Неделя 9",
        "hours": 24,
        "cost": 57000,
        "status": "progress",
        "progress": 75,
        "brief": "Генерация DOCX/XLSX/PDF из шаблонов",
        "description": "Модуль экспорта готовых документов в различных форматах.",
        "tasks": [
            _task("Реализована генерация DOCX документов", True),
            _task("Настроен экспорт в XLSX", True),
            _task("Создана система шаблонов", True),
            _task("Доработать генерацию PDF"),
            _task("Оптимизировать качество экспорта"),
        ],
    },
    {
        "number": 7,
        "name": "Тестирование и отладка",
        "icon": "🧪",
        "weeks": "Недели 10-11",
        "hours": 112,
        "cost": 216000,
        "status": "testing",
        "progress": 15,
        "brief": "Юнит-/интеграционное тестирование, отчёт о дефектах",
        "description": "Комплексное тестирование системы и исправление обнаруженных ошибок.",
        "tasks": [
            _task("Написаны базовые юнит-тесты", True),
            _task("Настроено окружение для тестирования", True),
            _task("Провести полное функциональное тестирование"),
            _task("Выполнить нагрузочное тестирование"),
            _task("Провести тестирование безопасности"),
            _task("Интеграционное тестирование всех модулей"),
            _task("Составить отчет о дефектах"),
        ],
    },
    {
        "number": 8,
        "name": "Инфраструктура и деплой",
        "icon": "🚀",
        "weeks": "Неделя 12",
        "hours": 40,
        "cost": 80000,
        "status": "pending",
        "progress": 0,
        "brief": "Автоматический деплой, мониторинг, бэкапы",
        "description": "Настройка CI/CD процессов и развертывание на продакшн.",
        "tasks": [
            _task("Настроить CI/CD pipeline"),
            _task("Развернуть на продакшн сервере"),
            _task("Настроить мониторинг и алерты"),
            _task("Реализовать автоматическое резервное копирование"),
            _task("Настроить балансировку нагрузки"),
            _task("Документировать процессы DevOps"),
        ],
    },
]


def ensure_schema(store: Store) -> None:
    store.executescript(SCHEMA_SQL)
    logger.debug("Schema ensured for %s", store.db_path)


def insert_stages(conn: sqlite3.Connection, stages: Iterable[Dict[str, Any]]) -> int:
    """Insert stage documents and their tasks in the order given.

    Must run inside an open transaction; task positions follow list order.
    Returns the number of stages inserted.
    """
    count = 0
    for index, stage in enumerate(stages):
        number = stage.get("number")
        cursor = conn.execute(
            INSERT_STAGE_SQL,
            (
                number if number is not None else index + 1,
                stage.get("name"),
                stage.get("icon"),
                stage.get("weeks"),
                stage.get("hours"),
                stage.get("cost"),
                stage.get("status"),
                stage.get("brief"),
                stage.get("description"),
                stage.get("progress") or 0,
            ),
        )
        stage_id = cursor.lastrowid
        conn.executemany(
            INSERT_TASK_SQL,
            [
                (stage_id, task.get("text"), 1 if task.get("completed") else 0, position)
                for position, task in enumerate(stage.get("tasks") or [])
            ],
        )
        count += 1
    return count


def seed_defaults(conn: sqlite3.Connection) -> int:
    return insert_stages(conn, DEFAULT_STAGES)


def stage_count(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) AS count FROM stages").fetchone()["count"]


def seed_if_empty(store: Store) -> bool:
    """Insert the default template when the stages table is empty."""
    with store.transaction() as conn:
        existing = stage_count(conn)
        if existing:
            logger.info("Database contains %d stages", existing)
            return False
        seeded = seed_defaults(conn)
    logger.info("Initialized database with %d default stages", seeded)
    return True


def initialize(store: Store) -> bool:
    ensure_schema(store)
    return seed_if_empty(store)
