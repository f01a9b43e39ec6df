import pytest

from stakepool_ops.errors import PoolNotFoundError
from stakepool_ops.workflows.kes import KESRotationWorkflow, KesState, kes_state
from tests.conftest import make_pool


def _listing(pool):
    return sorted(p.name for p in pool.node_skey.parent.iterdir())


class TestKesRotation:
    def test_missing_cold_key(self, make_ctx) -> None:
        ctx = make_ctx()
        with pytest.raises(PoolNotFoundError):
            KESRotationWorkflow(ctx).run("pool")
        assert "kes" not in ctx.cli.generated
        assert ctx.cli.op_certs == []

    def test_fresh_pool_issues_without_asking(self, make_ctx) -> None:
        ctx = make_ctx()
        pool = make_pool(ctx)
        assert kes_state(pool) is KesState.NO_ACTIVE_KEYS

        assert KESRotationWorkflow(ctx).run("pool") is True

        assert ctx.prompter.asked == []
        assert pool.kes_vkey.read_text() == "new-kes-vkey"
        assert pool.node_cert.read_text() == "opcert@42"
        assert ctx.cli.op_certs == [42]
        assert kes_state(pool) is KesState.ACTIVE_KEYS

    def test_decline_leaves_files_untouched(self, make_ctx) -> None:
        ctx = make_ctx(answers=["n"])
        pool = make_pool(ctx, kes=True)
        before = _listing(pool)

        assert KESRotationWorkflow(ctx).run("pool") is False

        assert _listing(pool) == before
        assert pool.kes_skey.read_text() == "old-kes-skey"
        assert pool.kes_vkey.read_text() == "old-kes-vkey"
        assert pool.node_cert.read_text() == "old-opcert"
        assert ctx.cli.op_certs == []

    def test_confirm_backs_up_then_rotates(self, make_ctx) -> None:
        ctx = make_ctx(answers=["y"])
        pool = make_pool(ctx, kes=True)

        assert KESRotationWorkflow(ctx).run("pool") is True

        names = _listing(pool)
        backups = {n.rsplit("_", 2)[0]: n for n in names if n.count("_") >= 2}
        assert set(backups) == {"pool.kes.skey", "pool.kes.vkey", "pool.node.cert"}
        pool_dir = pool.node_skey.parent
        assert (pool_dir / backups["pool.kes.skey"]).read_text() == "old-kes-skey"
        assert (pool_dir / backups["pool.node.cert"]).read_text() == "old-opcert"

        assert pool.kes_skey.read_text() == "new-kes-skey"
        assert pool.node_cert.read_text() == "opcert@42"
