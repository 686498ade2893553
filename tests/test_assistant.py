"""Tests for the natural-language assistant flows."""

import logging
import pytest
from datetime import datetime
from decimal import Decimal

from assistant import (
    NO_AMOUNT_REPLY,
    NO_CATEGORIES_REPLY,
    NO_RECORDS_REPLY,
    Assistant,
    describe_error,
    looks_like_record,
    resolve_account_name,
    resolve_category,
    split_segments,
)
from llm.client import CompletionClient
from llm.errors import ConfigurationInvalid, InvalidResponse, NetworkError
from llm.intents import Operation
from models.category import Category
from models.transaction import Transaction
from tests.helpers import (
    add_account,
    add_category,
    connection_error,
    sdk_client_answering,
    status_error,
)


@pytest.fixture
def small_ledger(services):
    """Categories 餐饮 and 其他, one cash account holding 100."""
    add_category(services, "餐饮")
    add_category(services, "其他")
    add_account(services, "现金", "100")
    return services


@pytest.fixture
def june_ledger(small_ledger):
    """Three June expenses totalling 180 and one from May."""
    rows = [
        (Decimal("50"), "午饭", datetime(2024, 6, 3, 12, 0)),
        (Decimal("80"), "聚餐", datetime(2024, 6, 8, 19, 0)),
        (Decimal("50"), "早餐", datetime(2024, 6, 15, 8, 0)),
        (Decimal("999"), "五月", datetime(2024, 5, 30, 12, 0)),
    ]
    for amount, title, date in rows:
        small_ledger.transactions.create(
            Transaction(None, amount, title, date, "餐饮", "现金")
        )
    return small_ledger


def _sum_this_month():
    return {
        "operation": "sum",
        "startDate": "2024-06-01T00:00:00",
        "endDate": "2024-06-15T10:00:00",
        "category": None,
        "account": None,
        "chatResponse": None,
    }


class TestRecord:
    """Tests for recording transactions from free text."""

    def test_yesterday_lunch(self, small_ledger, assistant, fake_chat):
        """Test recording "昨天午饭花了50" end to end."""
        fake_chat.reply(
            {
                "amount": 50.0,
                "category_name": "餐饮",
                "account_name": None,
                "note": "午饭",
                "date": "-1d",
            }
        )

        outcome = assistant.record("昨天午饭花了50")

        assert outcome.ok
        t = outcome.transaction
        assert t.amount == Decimal("50")
        assert t.category_name == "餐饮"
        assert t.account_name == "现金"
        assert t.date == datetime(2024, 6, 14)
        assert t.title == "午饭"
        assert small_ledger.transactions.count() == 1
        assert small_ledger.accounts.find_by_name("现金").balance == Decimal("50")
        assert outcome.reply() == (
            "Recorded 50.00 for '午饭' in 餐饮, account 现金 on 2024-06-14."
        )

    def test_prompt_lists_ledger_names(self, small_ledger, assistant, fake_chat):
        fake_chat.reply({"amount": 12, "category_name": "餐饮"})

        assistant.record("咖啡12")

        system = fake_chat.system_prompt()
        assert "[餐饮, 其他]" in system
        assert 'use "其他"' in system
        assert 'default to "现金"' in system
        assert fake_chat.user_prompt() == "咖啡12"
        assert fake_chat.calls[0]["temperature"] == 0.3

    def test_today_keeps_time_of_day(self, small_ledger, assistant, fake_chat):
        fake_chat.reply({"amount": 12, "category_name": "餐饮", "date": "today"})

        outcome = assistant.record("咖啡12")

        assert outcome.transaction.date == datetime(2024, 6, 15, 10, 0, 0)

    def test_missing_date_is_now(self, small_ledger, assistant, fake_chat):
        fake_chat.reply({"amount": 12, "category_name": "餐饮", "date": None})

        outcome = assistant.record("咖啡12")

        assert outcome.transaction.date == datetime(2024, 6, 15, 10, 0, 0)

    def test_unknown_category_falls_back_to_other(
        self, small_ledger, assistant, fake_chat
    ):
        fake_chat.reply({"amount": 300, "category_name": "宠物", "note": "猫粮"})

        outcome = assistant.record("猫粮300")

        assert outcome.transaction.category_name == "其他"
        assert outcome.transaction.title == "猫粮"

    def test_missing_note_uses_category(self, small_ledger, assistant, fake_chat):
        fake_chat.reply({"amount": 8, "category_name": "餐饮", "note": None})

        outcome = assistant.record("8块")

        assert outcome.transaction.title == "餐饮"

    def test_account_keyword_in_text(self, small_ledger, assistant, fake_chat):
        """Test that a payment keyword picks the account the model left out."""
        add_account(small_ledger, "微信支付", "0", "ewallet")
        fake_chat.reply({"amount": 20, "category_name": "餐饮", "account_name": None})

        outcome = assistant.record("用微信付了午饭20")

        assert outcome.transaction.account_name == "微信支付"
        assert small_ledger.accounts.find_by_name("微信支付").balance == Decimal("-20")

    def test_no_amount(self, small_ledger, assistant, fake_chat):
        fake_chat.reply({"amount": None, "note": "hello"})

        outcome = assistant.record("记一笔")

        assert not outcome.ok
        assert outcome.reply() == NO_AMOUNT_REPLY
        assert small_ledger.transactions.count() == 0

    def test_no_categories(self, services, assistant, fake_chat):
        fake_chat.reply({"amount": 5, "category_name": None})

        outcome = assistant.record("水5")

        assert outcome.reply() == NO_CATEGORIES_REPLY
        assert services.transactions.count() == 0

    def test_unparseable_reply(self, small_ledger, assistant, fake_chat):
        fake_chat.reply("Sorry, I cannot help with that.")

        outcome = assistant.record("午饭50")

        assert outcome.error == "The AI reply could not be understood. Try rephrasing."

    def test_network_failure(self, small_ledger, assistant, fake_chat):
        fake_chat.reply(connection_error())

        outcome = assistant.record("午饭50")

        assert outcome.error == NetworkError.user_message
        assert small_ledger.transactions.count() == 0

    def test_store_failure_is_reported(self, small_ledger, assistant, fake_chat):
        with small_ledger.db_manager.connect() as conn:
            conn.execute("""
                CREATE TRIGGER fail_insert BEFORE INSERT ON transactions
                BEGIN SELECT RAISE(ABORT, 'disk full'); END
            """)
            conn.commit()
        fake_chat.reply({"amount": 50, "category_name": "餐饮"})

        outcome = assistant.record("午饭50")

        assert outcome.error == "Saving to the local ledger failed; nothing was changed."
        assert small_ledger.accounts.find_by_name("现金").balance == Decimal("100")

    def test_voice(self, small_ledger, assistant, fake_chat):
        """Test the speech prompt and its short field names."""
        fake_chat.reply(
            {
                "amount": 30,
                "category": "餐饮",
                "note": "晚饭",
                "date": "2024-06-14T19:00:00",
                "account": "现金",
            }
        )

        outcome = assistant.record_voice("昨晚吃饭三十块")

        assert fake_chat.user_prompt() == "User said: '昨晚吃饭三十块'"
        assert fake_chat.calls[0]["max_tokens"] == 200
        assert outcome.transaction.amount == Decimal("30")
        assert outcome.transaction.date == datetime(2024, 6, 14)
        assert outcome.transaction.account_name == "现金"


class TestRecordMany:
    """Tests for recording several transactions from one statement."""

    def test_three_segments(self, small_ledger, assistant, fake_chat):
        fake_chat.reply(
            {"amount": 15, "category_name": "餐饮", "note": "午饭"},
            {"amount": 20, "category_name": "其他", "note": "打车"},
            {"amount": 3, "category_name": "餐饮", "note": "水"},
        )

        batch = assistant.record_many("午饭15，打车20，水3")

        assert len(batch.created) == 3
        assert [fake_chat.user_prompt(i) for i in range(3)] == [
            "记一笔：午饭15",
            "记一笔：打车20",
            "记一笔：水3",
        ]
        assert small_ledger.accounts.find_by_name("现金").balance == Decimal("62")
        reply = batch.reply()
        assert reply.startswith("Recorded 3 transactions, total 38.00:")
        assert "1. 午饭  15.00  (餐饮)" in reply

    def test_partial_failure(self, small_ledger, assistant, fake_chat):
        """Test that one bad segment does not stop the others."""
        fake_chat.reply(
            {"amount": 15, "category_name": "餐饮", "note": "午饭"},
            status_error(500, {"error": {"message": "overloaded"}}),
            {"amount": 3, "category_name": "餐饮", "note": "水"},
        )

        batch = assistant.record_many("午饭15；打车20；水3")

        assert len(batch.created) == 2
        assert [o.text for o in batch.failed] == ["打车20"]
        reply = batch.reply()
        assert "Recorded 2 transactions, total 18.00:" in reply
        assert "- 打车20" in reply

    def test_single_segment_uses_plain_record(self, small_ledger, assistant, fake_chat):
        fake_chat.reply({"amount": 50, "category_name": "餐饮", "note": "午饭"})

        batch = assistant.record_many("午饭50")

        assert len(batch.outcomes) == 1
        assert fake_chat.user_prompt() == "午饭50"
        assert batch.reply().startswith("Recorded 50.00")

    def test_nothing_recorded(self, small_ledger, assistant, fake_chat):
        fake_chat.reply({"amount": None}, {"amount": None})

        batch = assistant.record_many("a 1, b 2")

        assert batch.created == []
        assert batch.reply().startswith("Could not find any amounts to record.")

    def test_preview_is_capped(self, small_ledger, assistant, fake_chat):
        for i in range(1, 8):
            fake_chat.reply({"amount": i, "category_name": "餐饮", "note": f"item{i}"})

        batch = assistant.record_many("\n".join(f"item{i} {i}" for i in range(1, 8)))

        reply = batch.reply()
        assert "5. item5" in reply
        assert "item6" not in reply
        assert "... and 2 more" in reply


class TestAsk:
    """Tests for answering questions about the ledger."""

    def test_this_month_total(self, june_ledger, assistant, fake_chat):
        """Test asking "这个月花了多少" end to end."""
        fake_chat.reply(_sum_this_month(), "这个月你一共花了180.00元，共3笔。")

        answer = assistant.ask("这个月花了多少")

        assert "180" in answer
        assert len(fake_chat.calls) == 2
        assert fake_chat.user_prompt(0) == "这个月花了多少"
        assert fake_chat.calls[0]["response_format"] == {"type": "json_object"}
        final_system = fake_chat.system_prompt(1)
        assert "Total: 180.00\nRecords: 3" in final_system
        assert "User Question: 这个月花了多少" in final_system
        assert "response_format" not in fake_chat.calls[1]

    def test_each_call_logs_prompt_kind(
        self, june_ledger, assistant, fake_chat, caplog
    ):
        fake_chat.reply(_sum_this_month(), "共180元")

        with caplog.at_level(logging.INFO, logger="tally"):
            assistant.ask("这个月花了多少")

        calls = [
            r for r in caplog.records if r.getMessage().startswith("Calling LLM")
        ]
        assert [r.getMessage() for r in calls] == [
            "Calling LLM for query_intent (prompt v1.0)",
            "Calling LLM for final_answer (prompt v1.0)",
        ]
        assert all(r.levelno == logging.INFO for r in calls)

    def test_parse_query(self, june_ledger, assistant, fake_chat, now):
        fake_chat.reply(_sum_this_month())

        intent = assistant.parse_query("这个月花了多少", now)

        assert intent.operation == Operation.SUM
        assert intent.start_date == datetime(2024, 6, 1)
        assert intent.end_date.date() == now.date()
        assert intent.category_name is None
        assert intent.account_name is None

    def test_chat_makes_one_call(self, small_ledger, assistant, fake_chat):
        fake_chat.reply({"operation": "chat", "chatResponse": "你好！我是你的记账助手。"})

        answer = assistant.ask("你好")

        assert answer == "你好！我是你的记账助手。"
        assert len(fake_chat.calls) == 1

    def test_empty_result_makes_one_call(self, june_ledger, assistant, fake_chat):
        fake_chat.reply(
            {
                "operation": "list",
                "startDate": "2024-06-14T00:00:00",
                "endDate": "2024-06-14T23:59:59",
                "category": "其他",
            }
        )

        answer = assistant.ask("昨天其他类花了什么")

        assert answer == NO_RECORDS_REPLY
        assert len(fake_chat.calls) == 1

    def test_final_answer_failure_returns_result(self, june_ledger, assistant, fake_chat):
        fake_chat.reply(_sum_this_month(), connection_error())

        answer = assistant.ask("这个月花了多少")

        assert answer.startswith("Total: 180.00\nRecords: 3")

    def test_unknown_operation(self, small_ledger, assistant, fake_chat):
        fake_chat.reply({"operation": "delete_everything"})

        answer = assistant.ask("delete it all")

        assert answer == "The AI reply could not be understood. Try rephrasing."

    def test_api_error_message(self, small_ledger, assistant, fake_chat):
        fake_chat.reply(status_error(401, {"error": {"message": "Invalid API key"}}))

        answer = assistant.ask("这个月花了多少")

        assert answer == "The AI service rejected the request: Invalid API key"

    def test_non_json_reply_is_explained(self, small_ledger, now):
        """Test that a gateway page instead of JSON becomes a readable reply."""
        client = CompletionClient(
            "https://api.test/v1",
            "sk-test",
            "test-model",
            client=sdk_client_answering(200, "<html>gateway</html>"),
        )
        assistant = Assistant(
            small_ledger, client_factory=lambda: client, clock=lambda: now
        )

        assert assistant.ask("这个月花了多少") == InvalidResponse.user_message
        outcome = assistant.record("午饭50")
        assert outcome.error == InvalidResponse.user_message
        assert small_ledger.transactions.count() == 0

    def test_without_configuration(self, small_ledger):
        """Test that an unconfigured assistant explains instead of raising."""
        answer = Assistant(small_ledger).ask("这个月花了多少")

        assert answer == ConfigurationInvalid.user_message

    def test_uses_active_configuration(self, small_ledger):
        config = small_ledger.llm_configs.create("Local", "ollama", "ollama")

        client = Assistant(small_ledger).client_factory()

        assert client.base_url == "http://localhost:11434/v1"
        assert client.model == config.model_name


class TestHandle:
    """Tests for routing chat messages."""

    def test_statement_is_recorded(self, small_ledger, assistant, fake_chat):
        fake_chat.reply(
            {"amount": 50, "category_name": "餐饮", "note": "午饭", "date": "-1d"}
        )

        reply = assistant.handle("昨天午饭花了50")

        assert reply.startswith("Recorded 50.00")
        assert small_ledger.transactions.count() == 1

    def test_question_is_answered(self, june_ledger, assistant, fake_chat):
        fake_chat.reply(_sum_this_month(), "你这个月花了180元。")

        reply = assistant.handle("这个月花了多少")

        assert reply == "你这个月花了180元。"
        assert june_ledger.transactions.count() == 4

    def test_blank(self, assistant, fake_chat):
        assert assistant.handle("   ") == ""
        assert fake_chat.calls == []


class TestSplitSegments:
    """Tests for the multi-transaction splitting heuristic."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("午饭15，打车20，水3", ["午饭15", "打车20", "水3"]),
            ("咖啡4.5，面包3.2", ["咖啡4.5", "面包3.2"]),
            ("早饭10然后午饭20", ["早饭10", "午饭20"]),
            ("coffee 4.5 then groceries 32", ["coffee 4.5", "groceries 32"]),
            ("rent 1,200. water 3", ["rent 1,200", "water 3"]),
            ("房租3000\n水电200", ["房租3000", "水电200"]),
            ("打车五十块", ["打车五十块"]),
            ("hello there", []),
        ],
    )
    def test_split(self, text, expected):
        assert split_segments(text) == expected

    def test_connector_inside_one_purchase(self):
        """Known limitation: a connector in a single purchase splits it."""
        assert split_segments("买了咖啡然后付了15") == ["付了15"]


class TestHelpers:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("昨天午饭花了50", True),
            ("记一笔 打车20", True),
            ("spent 20 on lunch", True),
            ("这个月花了多少", False),
            ("how much did I spend?", False),
            ("你好", False),
        ],
    )
    def test_looks_like_record(self, text, expected):
        assert looks_like_record(text) is expected

    def test_resolve_account_name(self):
        accounts = ["微信支付", "支付宝", "现金", "信用卡/花呗"]

        assert resolve_account_name("x", accounts, suggested="支付宝") == "支付宝"
        assert resolve_account_name("x", accounts, suggested="不存在") == "现金"
        assert resolve_account_name("用花呗买的", accounts) == "信用卡/花呗"
        assert resolve_account_name("paid with Alipay", accounts) == "支付宝"
        assert resolve_account_name("x", ["Checking", "Cash"]) == "Cash"
        assert resolve_account_name("x", ["Checking", "Savings"]) == "Checking"
        assert resolve_account_name("x", []) is None

    def test_resolve_category(self):
        categories = [
            Category(1, "餐饮", "tag", "#000", "expense"),
            Category(2, "其他", "tag", "#000", "expense"),
        ]

        assert resolve_category("餐饮", categories).id == 1
        assert resolve_category("  餐饮 ", categories).id == 1
        assert resolve_category("Food", categories).id == 2
        assert resolve_category(None, categories[:1]).id == 1
        assert resolve_category("x", []) is None

    def test_describe_error(self):
        assert describe_error(NetworkError("boom")) == NetworkError.user_message
        assert describe_error(RuntimeError("boom")).startswith("Something went wrong")
