import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from postgrest.exceptions import APIError

from storefront.errors import CommerceRequestError, CommerceUnavailableError, ConfigurationError, ConsistencyError
from storefront.orders import reconciler, repository
from storefront.orders.models import ClaimStatus, ReconcileOutcome, utcnow
from storefront.payments.events import PaymentEvent


def _event(amount=10500, event_id="evt_1", pi="pi_1", currency="usd", cart_id="cart_1"):
    return PaymentEvent(
        event_id=event_id,
        event_type="payment_intent.succeeded",
        payment_reference=pi,
        amount_captured=amount,
        currency=currency,
        cart_id=cart_id,
        carrier="ups",
        customer_email="buyer@example.com",
    )


@pytest.fixture()
def alerts(monkeypatch):
    sent = []
    monkeypatch.setattr(reconciler, "send_operator_alert", lambda subject, lines: sent.append((subject, lines)))
    return sent


@pytest.fixture()
def cart(medusa):
    # 6000 + 2 x 2000 + 500 UPS = 10500
    medusa.add_cart("cart_1", shipping=medusa.ups())
    return medusa


def test_happy_path_creates_one_order_and_mirror(store, cart):
    result = reconciler.reconcile_payment(_event(), sleep=lambda _: None)

    assert result.outcome is ReconcileOutcome.COMPLETED
    assert result.order_id == "order_1"
    assert cart.complete_calls == 1
    mirrors = store.rows("order_mirrors")
    assert len(mirrors) == 1
    assert mirrors[0]["authoritative"] is False
    assert mirrors[0]["source"] == "medusa"
    assert mirrors[0]["amount_total"] == 10500
    assert mirrors[0]["carrier"] == "ups"
    assert mirrors[0]["item_count"] == 3
    claim = store.rows("payment_event_claims")[0]
    assert claim["status"] == ClaimStatus.COMPLETED.value
    assert claim["medusa_order_id"] == "order_1"
    assert claim["mirror_id"] == mirrors[0]["id"]


def test_redelivery_is_a_duplicate_without_side_effects(store, cart):
    first = reconciler.reconcile_payment(_event())
    second = reconciler.reconcile_payment(_event())

    assert first.outcome is ReconcileOutcome.COMPLETED
    assert second.outcome is ReconcileOutcome.DUPLICATE
    assert second.order_id == first.order_id
    assert cart.complete_calls == 1
    assert len(store.rows("order_mirrors")) == 1


def test_second_event_for_same_payment_is_a_duplicate(store, cart):
    reconciler.reconcile_payment(_event(event_id="evt_1"))
    # même PaymentIntent, autre événement (ex: redélivrance sous un nouvel id)
    result = reconciler.reconcile_payment(_event(event_id="evt_2"))

    assert result.outcome is ReconcileOutcome.DUPLICATE
    assert cart.complete_calls == 1


def test_concurrent_deliveries_create_a_single_order(store, cart, monkeypatch):
    barrier = threading.Barrier(2)
    original = repository.find_mirror

    def _find_then_wait(*args, **kwargs):
        row = original(*args, **kwargs)
        barrier.wait(timeout=5)
        return row

    monkeypatch.setattr(repository, "find_mirror", _find_then_wait)
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [pool.submit(reconciler.reconcile_payment, _event()) for _ in range(2)]
        outcomes = sorted(f.result(timeout=10).outcome.value for f in futures)

    # le perdant voit le claim en cours, ou déjà terminé s'il arrive après le gagnant
    assert outcomes[0] == ReconcileOutcome.COMPLETED.value
    assert outcomes[1] in (ReconcileOutcome.DUPLICATE.value, ReconcileOutcome.IN_PROGRESS.value)
    assert cart.complete_calls == 1
    assert len(store.rows("order_mirrors")) == 1
    assert len(store.rows("payment_event_claims")) == 1


def test_amount_mismatch_is_rejected_and_never_completed(store, cart, alerts):
    # le prix a changé chez Medusa après la création de la session
    cart.set_item_price("cart_1", "li_1", 5000)

    with pytest.raises(ConsistencyError) as exc:
        reconciler.reconcile_payment(_event(amount=10500))

    assert exc.value.expected == 9500
    assert exc.value.captured == 10500
    assert cart.complete_calls == 0
    assert store.rows("order_mirrors") == []
    assert store.rows("payment_event_claims")[0]["status"] == ClaimStatus.REJECTED.value
    assert len(alerts) == 1
    assert "capturé=10500 usd" in alerts[0][1]


def test_rejected_event_redelivery_stays_rejected(store, cart, alerts):
    cart.set_item_price("cart_1", "li_1", 5000)
    with pytest.raises(ConsistencyError):
        reconciler.reconcile_payment(_event())

    result = reconciler.reconcile_payment(_event())
    assert result.outcome is ReconcileOutcome.REJECTED
    assert cart.complete_calls == 0
    assert len(alerts) == 1


def test_currency_mismatch_is_rejected(store, cart, alerts):
    with pytest.raises(ConsistencyError):
        reconciler.reconcile_payment(_event(currency="eur"))
    assert cart.complete_calls == 0


def test_medusa_unavailable_releases_claim_for_redelivery(store, cart, monkeypatch):
    calls = []

    def _down(cart_id):
        calls.append(cart_id)
        raise CommerceUnavailableError("Medusa 503")

    monkeypatch.setattr("storefront.commerce.repository.get_cart", _down)
    with pytest.raises(CommerceUnavailableError):
        reconciler.reconcile_payment(_event(), sleep=lambda _: None)

    assert len(calls) == 3
    assert store.rows("payment_event_claims") == []
    assert cart.complete_calls == 0

    # Medusa revient: la redélivrance Stripe aboutit
    monkeypatch.setattr("storefront.commerce.repository.get_cart", cart.get_cart)
    result = reconciler.reconcile_payment(_event())
    assert result.outcome is ReconcileOutcome.COMPLETED
    assert cart.complete_calls == 1


def test_transient_completion_failure_is_retried(store, cart, monkeypatch):
    attempts = []

    def _flaky_complete(cart_id, payment_reference):
        attempts.append(cart_id)
        if len(attempts) == 1:
            raise CommerceUnavailableError("timeout")
        return cart.complete_cart(cart_id, payment_reference)

    monkeypatch.setattr("storefront.commerce.repository.complete_cart", _flaky_complete)
    result = reconciler.reconcile_payment(_event(), sleep=lambda _: None)

    assert result.outcome is ReconcileOutcome.COMPLETED
    assert len(attempts) == 2


def test_medusa_refusal_releases_claim_and_alerts(store, cart, monkeypatch, alerts):
    def _refuse(cart_id, payment_reference):
        raise CommerceRequestError("Payment not authorized", upstream_status=200)

    monkeypatch.setattr("storefront.commerce.repository.complete_cart", _refuse)
    with pytest.raises(CommerceRequestError):
        reconciler.reconcile_payment(_event())

    assert store.rows("payment_event_claims") == []
    assert store.rows("order_mirrors") == []
    assert alerts and "Payment not authorized" in alerts[0][1]


@pytest.mark.parametrize(
    "failure",
    [ConfigurationError("MEDUSA_BACKEND_URL manquant"), RuntimeError("boom")],
    ids=["configuration", "unexpected"],
)
def test_failure_before_order_releases_claim_for_redelivery(store, cart, monkeypatch, failure):
    def _broken(cart_id):
        raise failure

    monkeypatch.setattr("storefront.commerce.repository.get_cart", _broken)
    with pytest.raises(type(failure)):
        reconciler.reconcile_payment(_event(), sleep=lambda _: None)

    assert store.rows("payment_event_claims") == []
    assert cart.complete_calls == 0

    # erreur corrigée: la redélivrance n'attend pas l'expiration du bail
    monkeypatch.setattr("storefront.commerce.repository.get_cart", cart.get_cart)
    result = reconciler.reconcile_payment(_event())
    assert result.outcome is ReconcileOutcome.COMPLETED
    assert cart.complete_calls == 1


def test_mirror_failure_is_logged_and_not_retried(store, cart, caplog):
    store.failures[("order_mirrors", "insert")] = APIError({"code": "08006", "message": "connection failure"})

    with caplog.at_level("CRITICAL", logger="storefront.orders.reconciler"):
        result = reconciler.reconcile_payment(_event())

    assert result.outcome is ReconcileOutcome.MIRROR_FAILED
    assert result.order_id == "order_1"
    assert any("réconciliation manuelle" in r.getMessage() for r in caplog.records)
    claim = store.rows("payment_event_claims")[0]
    assert claim["status"] == ClaimStatus.MIRROR_FAILED.value
    assert claim["medusa_order_id"] == "order_1"

    # redélivrance: la commande existe, rien n'est rejoué
    store.failures.clear()
    again = reconciler.reconcile_payment(_event())
    assert again.outcome is ReconcileOutcome.DUPLICATE
    assert again.order_id == "order_1"
    assert cart.complete_calls == 1
    assert store.rows("order_mirrors") == []


def test_fresh_foreign_claim_is_in_progress(store, cart):
    repository.claim_event("evt_1", "pi_1", "cart_1")

    result = reconciler.reconcile_payment(_event())
    assert result.outcome is ReconcileOutcome.IN_PROGRESS
    assert cart.complete_calls == 0


@pytest.mark.parametrize("status", [ClaimStatus.PROCESSING, ClaimStatus.ORDER_CREATED])
def test_expired_claim_is_taken_over(store, cart, status):
    store.rows("payment_event_claims").append({
        "id": "claim_old",
        "idempotency_key": "evt_1",
        "payment_reference": "pi_1",
        "cart_id": "cart_1",
        "status": status.value,
        "claim_token": "token_old",
        "claimed_at": (utcnow() - timedelta(hours=1)).isoformat(),
    })

    result = reconciler.reconcile_payment(_event())

    assert result.outcome is ReconcileOutcome.COMPLETED
    claim = store.rows("payment_event_claims")[0]
    assert claim["claim_token"] != "token_old"
    assert claim["status"] == ClaimStatus.COMPLETED.value
    assert len(store.rows("order_mirrors")) == 1


def test_verify_amount_accepts_exact_match(cart):
    from storefront.pricing import service as pricing

    reconciler.verify_amount(_event(amount=10500), pricing.get_cart_total("cart_1"))


def test_order_status_reads_the_mirror(store, cart):
    assert reconciler.get_order_status("pi_1") == {"status": "pending", "order_id": None}

    reconciler.reconcile_payment(_event())
    status = reconciler.get_order_status("pi_1")
    assert status["status"] == "confirmed"
    assert status["order_id"] == "order_1"
    assert status["amount"] == 10500
