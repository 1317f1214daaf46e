"""Tests for the optimistic file view and its state machine."""

from filehub.client.optimistic import (
    MutationType,
    OptimisticFileView,
    PendingMutation,
    ViewState,
    apply_mutation,
    invert,
)


def _file(name, path=None, is_dir=False):
    return {"name": name, "path": path or name, "isDirectory": is_dir, "size": 0}


LISTING = [_file("docs", is_dir=True), _file("a.txt"), _file("p.txt")]


class TestTransforms:
    def test_delete(self):
        out = apply_mutation(LISTING, PendingMutation(1, MutationType.DELETE, "p.txt"))
        assert [e["path"] for e in out] == ["docs", "a.txt"]

    def test_add_keeps_dirs_first_order(self):
        mutation = PendingMutation(1, MutationType.ADD, "b", {"file": _file("b", is_dir=True)})
        out = apply_mutation(LISTING, mutation)
        assert [e["name"] for e in out] == ["b", "docs", "a.txt", "p.txt"]

    def test_rename(self):
        mutation = PendingMutation(1, MutationType.RENAME, "a.txt", {"newName": "z.txt", "newPath": "z.txt"})
        out = apply_mutation(LISTING, mutation)
        assert [e["path"] for e in out] == ["docs", "z.txt", "p.txt"]

    def test_transforms_do_not_touch_input(self):
        apply_mutation(LISTING, PendingMutation(1, MutationType.DELETE, "p.txt"))
        assert len(LISTING) == 3


class TestInverse:
    def test_delete_inverse_restores_entry(self):
        mutation = PendingMutation(1, MutationType.DELETE, "p.txt")
        inverse = invert(mutation, LISTING)

        assert inverse.type == MutationType.ADD
        restored = apply_mutation(apply_mutation(LISTING, mutation), inverse)
        assert restored == LISTING

    def test_rename_inverse(self):
        mutation = PendingMutation(1, MutationType.RENAME, "a.txt", {"newName": "z.txt", "newPath": "z.txt"})
        inverse = invert(mutation, LISTING)

        restored = apply_mutation(apply_mutation(LISTING, mutation), inverse)
        assert sorted(e["path"] for e in restored) == sorted(e["path"] for e in LISTING)

    def test_add_inverse_is_delete(self):
        mutation = PendingMutation(1, MutationType.ADD, "n.txt", {"file": _file("n.txt")})
        assert invert(mutation, LISTING).type == MutationType.DELETE

    def test_delete_of_unknown_path_has_no_inverse(self):
        assert invert(PendingMutation(1, MutationType.DELETE, "ghost"), LISTING) is None


class TestView:
    def test_pending_delete_hidden_until_failure(self):
        view = OptimisticFileView(LISTING)
        mutation = view.apply(MutationType.DELETE, "p.txt")

        assert view.state == ViewState.OPTIMISTIC_APPLIED
        assert "p.txt" not in [e["path"] for e in view.view()]

        inverse = view.fail(mutation.id)
        assert inverse.type == MutationType.ADD
        assert "p.txt" in [e["path"] for e in view.view()]
        assert view.state == ViewState.IDLE

    def test_settled_mutation_dropped_on_reload(self):
        view = OptimisticFileView(LISTING)
        mutation = view.apply(MutationType.DELETE, "p.txt")
        view.succeed(mutation.id)

        view.begin_reload()
        assert view.state == ViewState.RELOADING
        view.replace([_file("docs", is_dir=True), _file("a.txt")])

        assert view.pending == []
        assert view.state == ViewState.IDLE

    def test_unsettled_mutation_survives_reload(self):
        view = OptimisticFileView(LISTING)
        view.apply(MutationType.DELETE, "p.txt")

        view.begin_reload()
        view.replace(LISTING)

        assert view.state == ViewState.OPTIMISTIC_APPLIED
        assert "p.txt" not in [e["path"] for e in view.view()]

    def test_reload_failure_keeps_pending(self):
        view = OptimisticFileView(LISTING)
        view.apply(MutationType.DELETE, "p.txt")
        view.begin_reload()
        view.reload_failed()

        assert view.state == ViewState.OPTIMISTIC_APPLIED

    def test_mutations_apply_in_order(self):
        view = OptimisticFileView(LISTING)
        view.apply(MutationType.RENAME, "a.txt", {"newName": "b.txt", "newPath": "b.txt"})
        view.apply(MutationType.DELETE, "b.txt")

        assert [e["path"] for e in view.view()] == ["docs", "p.txt"]

    def test_fail_unknown_id(self):
        assert OptimisticFileView(LISTING).fail(99) is None


class TestStateMachine:
    def test_same_state_is_noop(self):
        view = OptimisticFileView()
        assert view.transition(ViewState.IDLE)

    def test_valid_transitions(self):
        view = OptimisticFileView()
        assert view.transition(ViewState.RELOADING)
        assert view.transition(ViewState.OPTIMISTIC_APPLIED)
        assert view.transition(ViewState.IDLE)
        assert view.state == ViewState.IDLE
