from __future__ import annotations

import threading

import pytest

from releaselink.errors import (
    AggregateReleaseError,
    ErrorCollector,
    OperationError,
    ReleaseLinkError,
    classify_error,
    redact,
)
from releaselink.github_rest import GitHubAPIError


def test_classify_rate_limit():
    info = classify_error(RuntimeError('API Rate Limit Exceeded'))
    assert info.category == 'github.rate_limit'
    assert info.transient is True


def test_classify_abuse():
    info = classify_error(RuntimeError('Abuse detection triggered'))
    assert info.category == 'github.abuse'
    assert info.transient is True


def test_classify_network():
    info = classify_error(RuntimeError('Connection reset by peer'))
    assert info.category == 'network'
    assert info.transient is True


@pytest.mark.parametrize(
    ('status', 'category', 'transient'),
    [
        (401, 'github.permission', False),
        (403, 'github.permission', False),
        (404, 'github.not_found', False),
        (502, 'github.server', True),
        (422, 'github.request', False),
    ],
)
def test_classify_by_status(status, category, transient):
    info = classify_error(GitHubAPIError('boom', status=status))
    assert info.category == category
    assert info.transient is transient
    assert info.original_type == 'GitHubAPIError'


def test_classify_generic():
    info = classify_error(ValueError('Some other problem'))
    assert info.category == 'generic'


def test_redact_tokens():
    sample = (
        "Token ghp_ABCDEFGHIJKLMNOPQRSTUVWX plus github_pat_1234567890abcdefghijkl "
        "and ghs_ABCDEFGHIJKLMNOPQRSTUVWX"
    )
    red = redact(sample)
    assert 'ghp_' not in red
    assert 'github_pat_' not in red
    assert 'ghs_' not in red
    assert red.count('<redacted>') == 3
    assert redact('') == ''


def test_collector_is_thread_safe():
    collector = ErrorCollector()

    def worker(start: int) -> None:
        for n in range(start, start + 50):
            collector.add(OperationError(n, 500, f'failed #{n}'))

    threads = [threading.Thread(target=worker, args=(i * 50,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(collector) == 400
    assert sorted(e.target_number for e in collector) == list(range(400))


def test_empty_collector_does_not_raise():
    ErrorCollector().raise_if_any()


def test_aggregate_from_operation_errors():
    cause = GitHubAPIError('server exploded', status=500)
    collector = ErrorCollector()
    collector.extend(
        [
            OperationError(1, 500, 'server exploded', cause),
            OperationError(2, None, 'token ghp_ABCDEFGHIJKLMNOPQRSTUVWX leaked'),
        ]
    )
    with pytest.raises(AggregateReleaseError) as excinfo:
        collector.raise_if_any()
    err = excinfo.value
    assert len(err) == 2
    assert err.code == 'EAGGREGATE'
    assert err.errors[0] is cause
    assert isinstance(err.errors[1], ReleaseLinkError)
    assert err.errors[1].code == 'EOPERATION'
    assert [op.target_number for op in err.operation_errors] == [1, 2]
    assert '2 error(s) occurred' in str(err)
    assert 'ghp_' not in str(err)
    assert list(err) == err.errors
