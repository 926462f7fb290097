from arena_relay.data.subscriptions import SubscriptionManager


def test_client_subscribe_reports_new_only():
    subs = SubscriptionManager()
    assert subs.subscribe_client('c1', ['A', 'B']) == ['A', 'B']
    assert subs.subscribe_client('c2', ['B', 'C']) == ['C']
    assert subs.all_tickers() == {'A', 'B', 'C'}
    assert subs.client_count == 2


def test_client_subscribe_skips_junk():
    subs = SubscriptionManager()
    assert subs.subscribe_client('c1', ['A', '', None, 5, 'A']) == ['A']
    assert subs.client_tickers('c1') == {'A'}


def test_unsubscribe_and_remove():
    subs = SubscriptionManager()
    subs.subscribe_client('c1', ['A', 'B'])
    subs.unsubscribe_client('c1', ['A'])
    assert subs.client_tickers('c1') == {'B'}
    subs.remove_client('c1')
    assert subs.client_count == 0
    assert subs.all_tickers() == set()
    subs.unsubscribe_client('missing', ['A'])


def test_agent_markets_union_with_clients():
    subs = SubscriptionManager()
    subs.subscribe_client('c1', ['A'])
    assert subs.add_agent_markets(['A', 'B']) == ['B']
    assert subs.agent_markets == {'A', 'B'}


def test_replace_agent_markets():
    subs = SubscriptionManager()
    subs.add_agent_markets(['A', 'B'])
    assert subs.replace_agent_markets(['B', 'C']) == ['C']
    assert subs.agent_markets == {'B', 'C'}
