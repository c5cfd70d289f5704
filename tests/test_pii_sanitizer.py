import pytest

from analyst.services import audit_service, pii_sanitizer
from analyst.services.pii_sanitizer import PiiCategory, sanitize


def test_masks_email_addresses():
    text = "User john.doe@example.com reported an issue. Contact admin@company.org for help."
    r = sanitize(text)
    assert "[EMAIL_REDACTED]" in r.sanitized_text
    assert "john.doe@example.com" not in r.sanitized_text
    assert "admin@company.org" not in r.sanitized_text
    assert r.total_masked_entities == 2
    assert r.detected_categories == (PiiCategory.EMAIL,)


def test_email_match_is_case_insensitive():
    r = sanitize("escalated to ON-CALL@Example.COM")
    assert r.sanitized_text == "escalated to [EMAIL_REDACTED]"


def test_masks_ipv4_addresses():
    text = "Connection from 192.168.1.100 to server 10.0.0.1 failed."
    r = sanitize(text)
    assert r.sanitized_text == "Connection from [IP_REDACTED] to server [IP_REDACTED] failed."
    assert r.total_masked_entities == 2
    assert r.detected_categories == (PiiCategory.IP,)


def test_ipv4_octets_are_range_checked():
    text = "build 999.300.1.1 deployed"
    r = sanitize(text)
    assert r.sanitized_text == text
    assert r.total_masked_entities == 0


def test_masks_full_ipv6_address():
    r = sanitize("peer 2001:0db8:85a3:0000:0000:8a2e:0370:7334 reset")
    assert r.sanitized_text == "peer [IP_REDACTED] reset"
    assert r.total_masked_entities == 1


def test_masks_compressed_ipv6_as_one_entity():
    r = sanitize("v6 fe80::1ff:fe23:4567:890a up")
    assert r.sanitized_text == "v6 [IP_REDACTED] up"
    assert r.total_masked_entities == 1


def test_masks_ipv4_mapped_ipv6_without_leaving_octets():
    r = sanitize("peer ::ffff:192.168.1.1 closed")
    assert r.sanitized_text == "peer [IP_REDACTED] closed"
    assert r.total_masked_entities == 1
    assert r.detected_categories == (PiiCategory.IP,)


def test_ipv4_and_ipv6_share_one_category():
    r = sanitize("a@b.com c@d.org 10.0.0.1 ::1")
    assert r.total_masked_entities == 4
    assert r.detected_categories == (PiiCategory.EMAIL, PiiCategory.IP)


def test_masks_phone_numbers():
    text = "Call 555-123-4567 or (800) 555-0199 for support."
    r = sanitize(text)
    assert "555-123-4567" not in r.sanitized_text
    assert "(800) 555-0199" not in r.sanitized_text
    assert r.sanitized_text.count("[PHONE_REDACTED]") == 2
    assert r.detected_categories == (PiiCategory.PHONE,)


def test_masks_international_phone_number():
    r = sanitize("customer +44 2079460958 called")
    assert r.sanitized_text == "customer [PHONE_REDACTED] called"


def test_long_numeric_fields_are_over_masked_as_phones():
    # Permissive on purpose: eight-plus digit runs are treated as phone numbers.
    r = sanitize("order 12345678 shipped")
    assert r.sanitized_text == "order [PHONE_REDACTED] shipped"


@pytest.mark.parametrize("card", [
    "4111111111111111",     # Visa
    "5500000000000004",     # MasterCard
    "378282246310005",      # Amex
    "6011111111111117",     # Discover
    "3530111333300000",     # JCB
    "1234-5678-9012-3456",  # generic dashed
    "1234 5678 9012 3456",  # generic spaced
])
def test_masks_credit_card_numbers(card):
    r = sanitize(f"payment failed for card {card} at checkout")
    assert r.sanitized_text == "payment failed for card [CC_REDACTED] at checkout"
    assert r.total_masked_entities == 1
    assert r.detected_categories == (PiiCategory.CREDIT_CARD,)


def test_card_numbers_are_not_split_into_phone_numbers():
    r = sanitize("4111111111111111 192.168.1.1")
    assert r.sanitized_text == "[CC_REDACTED] [IP_REDACTED]"
    assert r.total_masked_entities == 2
    assert PiiCategory.PHONE not in r.detected_categories


def test_one_of_each_category():
    r = sanitize("Call 555-123-4567, card 4111111111111111, email a@b.com, ip 10.0.0.1")
    for token in ("[CC_REDACTED]", "[EMAIL_REDACTED]", "[IP_REDACTED]", "[PHONE_REDACTED]"):
        assert token in r.sanitized_text
    assert r.total_masked_entities == 4
    assert set(r.detected_categories) == set(PiiCategory)
    assert len(r.detected_categories) == 4


def test_categories_follow_masking_order():
    r = sanitize("Error log from 192.168.1.1:\nUser email: test@example.com\nPhone: 555-123-4567\nCard: 4111111111111111\n")
    assert r.total_masked_entities == 4
    assert r.detected_categories == (
        PiiCategory.CREDIT_CARD, PiiCategory.EMAIL, PiiCategory.IP, PiiCategory.PHONE,
    )


def test_no_pii_literal_survives(make_snapshot):
    log = make_snapshot().log_content
    r = sanitize(log)
    for literal in ("jane.doe@example.com", "10.20.30.40", "4111111111111111", "555-123-4567"):
        assert literal in log
        assert literal not in r.sanitized_text
    assert r.total_masked_entities == 4


@pytest.mark.parametrize("text", [
    "Call 555-123-4567, card 4111111111111111, email a@b.com, ip 10.0.0.1",
    "peer ::ffff:192.168.1.1 and fe80::1 via +44 2079460958",
    "plain log line with nothing sensitive",
])
def test_sanitizing_twice_changes_nothing(text):
    once = sanitize(text)
    twice = sanitize(once.sanitized_text)
    assert twice.sanitized_text == once.sanitized_text
    assert twice.total_masked_entities == 0


@pytest.mark.parametrize("text", ["", None, "   \n\t"])
def test_empty_input(text):
    r = sanitize(text)
    assert r.sanitized_text == ""
    assert r.total_masked_entities == 0
    assert r.detected_categories == ()


def test_clean_text_is_unchanged():
    text = "This is a normal log message with no sensitive data."
    r = sanitize(text)
    assert r.sanitized_text == text
    assert r.total_masked_entities == 0
    assert r.detected_categories == ()


def test_masking_is_audited_without_the_pii():
    sanitize("mail ops@example.com from 10.0.0.1")
    events = audit_service.list_events(event_type="PII_MASKED")
    assert len(events) == 1
    assert events[0].detail == {"categories": ["EMAIL", "IP"], "count": 2}
    assert "ops@example.com" not in str(events[0].model_dump())


def test_clean_text_is_not_audited():
    sanitize("nothing to see here")
    assert audit_service.list_events(event_type="PII_MASKED") == []


def test_audit_failure_does_not_break_sanitization(monkeypatch):
    def _broken(*args, **kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(pii_sanitizer, "log_event", _broken)
    r = sanitize("mail ops@example.com")
    assert r.sanitized_text == "mail [EMAIL_REDACTED]"
    assert r.total_masked_entities == 1
