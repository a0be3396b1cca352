import random
from collections import defaultdict
from decimal import Decimal

from conftest import make_record, tax_line
from invoice_tax.aggregator import (
    merge_summaries,
    process_invoice,
    process_invoices,
    sort_buckets,
    summarize,
)
from invoice_tax.events import EventCollector, TaxEventType
from invoice_tax.schema import TaxCategory


def _sample_records():
    return [
        make_record("NL-B2B", customer_country="NL", gross="100.00"),
        make_record(
            "NL-B2C",
            customer_country="NL",
            gross="121.00",
            lines=[tax_line(2100, 21, "BTW")],
        ),
        make_record(
            "DE-1", customer_country="DE", gross="119.00", lines=[tax_line(1900, 19)]
        ),
        make_record(
            "DE-2", customer_country="DE", gross="238.00", lines=[tax_line(3800, 19)]
        ),
        make_record("US-1", customer_country="US", gross="50.00", currency="USD"),
        make_record("US-2", customer_country="US", gross="70.00", currency="EUR"),
    ]


def test_process_invoice_builds_detail_row():
    row = process_invoice(
        make_record("INV-7", "Muster GmbH", gross="119.00", lines=[tax_line(1900, 19)])
    )
    assert row.invoice_number == "INV-7"
    assert row.customer_name == "Muster GmbH"
    assert row.gross_amount == Decimal("119.00")
    assert row.tax_amount == Decimal("19")
    assert row.net_amount == Decimal("100.00")
    assert row.tax_rate == "19%"
    assert row.tax_info is TaxCategory.STANDARD


def test_same_country_different_rate_labels_are_separate_buckets():
    report = process_invoices(_sample_records()[:2], "DE", on_event=None)
    nl = [b for b in report.summary if b.country == "NL"]
    assert [b.tax_rate for b in nl] == ["0% (RC)", "21% (OSS)"]
    assert [b.tax_info for b in nl] == [TaxCategory.REVERSE_CHARGE, TaxCategory.OSS]


def test_buckets_split_by_currency():
    report = process_invoices(_sample_records(), "DE", on_event=None)
    us = [b for b in report.summary if b.country == "US"]
    assert sorted(b.currency for b in us) == ["EUR", "USD"]
    assert report.totals.currencies == ["EUR", "USD"]


def test_summary_in_first_seen_order_and_details_in_input_order():
    records = _sample_records()
    report = process_invoices(records, "DE", on_event=None)
    assert [r.invoice_number for r in report.details] == [r.invoice_number for r in records]
    assert [b.key for b in report.summary] == [
        ("NL", "0% (RC)", "EUR"),
        ("NL", "21% (OSS)", "EUR"),
        ("DE", "19%", "EUR"),
        ("US", "0% (Export)", "USD"),
        ("US", "0% (Export)", "EUR"),
    ]


def test_bucket_totals_equal_detail_sums_in_any_order():
    records = _sample_records()
    details = process_invoices(records, "DE", on_event=None).details

    expected = defaultdict(lambda: [Decimal("0"), Decimal("0"), Decimal("0"), 0])
    for row in details:
        acc = expected[(row.customer_country, row.tax_rate, row.currency)]
        acc[0] += row.gross_amount
        acc[1] += row.net_amount
        acc[2] += row.tax_amount
        acc[3] += 1

    rng = random.Random(7)
    for _ in range(5):
        shuffled = list(details)
        rng.shuffle(shuffled)
        for bucket in summarize(shuffled):
            assert [
                bucket.total_gross,
                bucket.total_net,
                bucket.total_tax,
                bucket.invoice_count,
            ] == expected[bucket.key]


def test_de_bucket_accumulates():
    report = process_invoices(_sample_records(), "DE", on_event=None)
    de = next(b for b in report.summary if b.country == "DE")
    assert de.invoice_count == 2
    assert de.total_gross == Decimal("357.00")
    assert de.total_tax == Decimal("57")
    assert de.total_net == Decimal("300.00")


def test_merge_summaries_matches_single_fold():
    details = process_invoices(_sample_records(), "DE", on_event=None).details
    whole = sort_buckets(summarize(details))
    merged = sort_buckets(merge_summaries(summarize(details[:3]), summarize(details[3:])))
    assert [b.model_dump() for b in merged] == [b.model_dump() for b in whole]


def test_merge_does_not_modify_inputs():
    details = process_invoices(_sample_records(), "DE", on_event=None).details
    left = summarize(details[2:4])
    before = [b.model_dump() for b in left]
    merge_summaries(left, left)
    assert [b.model_dump() for b in left] == before


def test_company_country_of_run_applies_to_all_records():
    record = make_record("X", customer_country="FR", company_country="US")
    report = process_invoices([record], "DE", on_event=None)
    assert report.company_country == "DE"
    assert report.details[0].tax_rate == "0% (RC)"


def test_events_reach_hook_during_batch():
    events = EventCollector()
    record = make_record(
        "EXP", customer_country="US", gross="119.00", lines=[tax_line(1900, 19)]
    )
    process_invoices([record], "DE", on_event=events)
    assert len(events.of_type(TaxEventType.ANOMALOUS_EXPORT)) == 1


def test_empty_batch():
    report = process_invoices([], "DE", on_event=None)
    assert report.details == []
    assert report.summary == []
    assert report.totals.invoice_count == 0
