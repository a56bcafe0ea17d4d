from services.access_gate import AccessGate
from services.content_types import AnnotatedItem, ContentItem, SourceKind, SubscriptionStatus, UserContext


PLACEHOLDER = "/static/premium-locked.png"


def _item(item_id, *, is_premium, preview_url=None):
    return ContentItem(
        id=item_id,
        source_kind=SourceKind.TEMPLATE,
        category="Festival",
        title=f"Item {item_id}",
        is_premium=is_premium,
        asset_url=f"/assets/{item_id}.png",
        preview_url=preview_url,
    )


def test_premium_items_are_locked_for_non_subscribers_but_stay_listed():
    gate = AccessGate(PLACEHOLDER)
    items = [
        _item("free", is_premium=False),
        _item("premium", is_premium=True),
        _item("teaser", is_premium=True, preview_url="/previews/teaser.jpg"),
    ]

    annotated = gate.annotate(items, UserContext(user_id="u1"))

    assert [entry.item.id for entry in annotated] == ["free", "premium", "teaser"]
    free, premium, teaser = annotated
    assert not free.is_locked and not free.preview_only
    assert free.asset_url == "/assets/free.png"
    assert premium.is_locked and premium.preview_only
    assert premium.asset_url == PLACEHOLDER
    assert teaser.asset_url == "/previews/teaser.jpg"


def test_active_subscription_unlocks_premium_items():
    gate = AccessGate(PLACEHOLDER)
    subscriber = UserContext(user_id="u1", subscription=SubscriptionStatus(active=True, tier="PRO"))

    (entry,) = gate.annotate([_item("premium", is_premium=True)], subscriber)

    assert not entry.is_locked
    assert entry.asset_url == "/assets/premium.png"


def test_anonymous_requester_is_never_subscribed():
    gate = AccessGate(PLACEHOLDER)

    assert gate.is_locked(_item("premium", is_premium=True), None)
    assert gate.is_locked(_item("premium", is_premium=True), UserContext.anonymous())
    assert not gate.is_locked(_item("free", is_premium=False), None)


def test_annotate_preserves_engagement_flags():
    gate = AccessGate(PLACEHOLDER)
    existing = AnnotatedItem(item=_item("premium", is_premium=True), is_liked=True, is_downloaded=True)

    (entry,) = gate.annotate([existing], UserContext(user_id="u1"))

    assert entry.is_locked
    assert entry.is_liked and entry.is_downloaded
