"""Tests for envtrace.proxy: wrapping and the interception behaviours."""

import gc
import weakref
from types import ModuleType, SimpleNamespace

import pytest

from envtrace import Action, TracedDict, TracedNamespace, Tracer


@pytest.fixture
def tracer():
    return Tracer(namespace={}, verbose=False)


@pytest.fixture
def env(tracer):
    return tracer.wrap(tracer.env)


class TestWrapping:
    def test_root_is_named(self, tracer):
        assert tracer.container_name(tracer.env) == "_ENV"

    def test_wrap_unwrap(self, tracer):
        proxy = tracer.wrap(tracer.env)
        assert isinstance(proxy, TracedDict)
        assert tracer.is_proxy(proxy)
        assert tracer.unwrap(proxy) is tracer.env

    def test_wrap_is_stable(self, tracer):
        first = tracer.wrap(tracer.env)
        assert tracer.wrap(tracer.env) is first
        assert tracer.wrap(first) is first

    def test_non_containers_pass_through(self, tracer):
        items = [1, 2]
        assert tracer.wrap(items) is items
        assert tracer.wrap(5) == 5
        assert tracer.unwrap(items) is items

    def test_namespace_proxy(self, tracer):
        ns = SimpleNamespace(a=1)
        assert isinstance(tracer.wrap(ns), TracedNamespace)

    def test_repeated_reads_give_same_proxy(self, tracer, env):
        env["d"] = {}
        first = env["d"]
        assert env["d"] is first
        assert tracer.unwrap(first) is tracer.env["d"]

    def test_proxy_kept_without_references(self, tracer):
        tracer.env["d"] = {}
        ref = weakref.ref(tracer.wrap(tracer.env["d"]))
        gc.collect()
        assert ref() is not None
        assert tracer.wrap(tracer.env["d"]) is ref()

    def test_recycled_id_does_not_inherit_name(self):
        tracer = Tracer(namespace={}, verbose=False, actions=["READ", "HOOK_CALL"])
        env = tracer.wrap(tracer.env)
        env["a"] = {}
        for _ in range(20):
            env["tmp"] = {}
            del env["tmp"]
            env["fresh"] = {"ref": env["a"]}
            assert tracer.container_name(tracer.env["fresh"]) == "_ENV.fresh"
            assert tracer.env["fresh"]["ref"] is tracer.env["a"]

    def test_child_names(self, tracer, env):
        env["d"] = {"inner": {}}
        assert tracer.container_name(tracer.env["d"]) == "_ENV.d"
        env["d"]["inner"]
        assert tracer.container_name(tracer.env["d"]["inner"]) == "_ENV.d.inner"


class TestNoProxyLeaks:
    def test_store_proxy(self, tracer, env):
        env["a"] = {}
        env["b"] = env["a"]
        assert tracer.env["b"] is tracer.env["a"]
        assert not tracer.is_proxy(tracer.env["b"])

    def test_store_nested_proxy(self, tracer, env):
        env["a"] = {}
        env["c"] = {"inner": env["a"]}
        env["l"] = [env["a"], 1]
        assert tracer.env["c"]["inner"] is tracer.env["a"]
        assert tracer.env["l"][0] is tracer.env["a"]

    def test_nested_proxy_on_namespace(self, tracer, env):
        env["ns"] = SimpleNamespace()
        env["a"] = {}
        env["ns"].ref = env["a"]
        assert vars(tracer.env["ns"])["ref"] is tracer.env["a"]

    def test_store_tuple_with_proxy(self, tracer, env):
        env["a"] = {}
        env["pair"] = (env["a"], 1)
        assert tracer.env["pair"] == (tracer.env["a"], 1)
        assert tracer.env["pair"][0] is tracer.env["a"]

    def test_store_sets_with_proxy(self, tracer, env):
        env["mod"] = ModuleType("mod")
        env["fs"] = frozenset([env["mod"]])
        env["s"] = {env["mod"]}
        assert next(iter(tracer.env["fs"])) is tracer.env["mod"]
        assert next(iter(tracer.env["s"])) is tracer.env["mod"]

    def test_sweep_clears_list_mutation(self, tracer, env):
        env["a"] = {}
        env["bag"] = []
        env["bag"].append(env["a"])
        assert tracer.is_proxy(tracer.env["bag"][0])
        tracer.sweep()
        assert tracer.env["bag"][0] is tracer.env["a"]


class TestInterception:
    def test_write_then_read(self, tracer, env):
        env["x"] = [1, 2, 3]
        write = tracer.actions[-1]
        assert write.action == Action.WRITE
        assert write.change_type == "new"
        assert write.key == "x"

        assert env["x"] == [1, 2, 3]
        read = tracer.actions[-1]
        assert read.action == Action.READ
        assert read.value == [1, 2, 3]
        assert read.container is tracer.env

    def test_update(self, tracer, env):
        env["x"] = 1
        env["x"] = 2
        rec = tracer.actions[-1]
        assert rec.change_type == "update"
        assert (rec.old_value, rec.new_value) == (1, 2)

    def test_delete(self, tracer, env):
        env["x"] = 1
        del env["x"]
        rec = tracer.actions[-1]
        assert rec.change_type == "delete"
        assert rec.old_value == 1
        assert "x" not in tracer.env
        with pytest.raises(KeyError):
            del env["x"]

    def test_missing_key(self, tracer, env):
        with pytest.raises(KeyError):
            env["nope"]
        assert len(tracer.actions) == 0
        assert env.get("nope", 3) == 3

    def test_iteration_is_not_logged(self, tracer, env):
        tracer.env.update(a=1, b={"k": 2})
        pairs = list(env.items())
        assert [k for k, _ in pairs] == ["a", "b"]
        assert isinstance(pairs[1][1], TracedDict)
        assert list(env) == ["a", "b"]
        assert "a" in env
        assert len(env) == 2
        assert len(tracer.actions) == 0

    def test_views_are_live(self, tracer, env):
        tracer.env["a"] = 1
        items, values = env.items(), env.values()
        tracer.env["b"] = 2
        assert list(items) == [("a", 1), ("b", 2)]
        assert len(items) == 2
        assert ("a", 1) in items
        assert ("a", 2) not in items
        assert items & {("a", 1)} == {("a", 1)}
        assert 2 in values
        assert list(values) == [1, 2]
        assert len(tracer.actions) == 0

    def test_mapping_helpers(self, tracer, env):
        env.update({"a": 1})
        assert env.setdefault("a", 5) == 1
        assert env.pop("a") == 1
        assert [r.change_type for r in tracer.actions.of(Action.WRITE)] == ["new", "delete"]

    def test_routine_is_hooked_on_store(self, tracer, env):
        env["f"] = lambda: 1
        assert tracer.is_wrapper(tracer.env["f"])
        assert tracer.env["f"]() == 1
        assert tracer.actions[-1].callable_name == "f"

    def test_classes_are_not_hooked(self, tracer, env):
        env["C"] = dict
        assert tracer.env["C"] is dict


class TestInvoke:
    def test_call_slot(self, tracer, env):
        env["obj"] = {"__call__": lambda a: a * 2}
        assert env["obj"](21) == 42
        rec = tracer.actions.of(Action.CALL)[-1]
        assert rec.callable_name == "_ENV.obj"
        assert rec.arguments == (21,)

    def test_missing_call_slot(self, env):
        env["plain"] = {}
        with pytest.raises(TypeError):
            env["plain"]()


class TestTracedNamespace:
    def test_attribute_access(self, tracer, env):
        env["ns"] = SimpleNamespace(a=1)
        ns = env["ns"]
        assert ns.a == 1
        rec = tracer.actions[-1]
        assert (rec.action, rec.key, rec.value) == (Action.READ, "a", 1)

        ns.b = 2
        assert tracer.actions[-1].change_type == "new"
        del ns.b
        assert tracer.actions[-1].change_type == "delete"

    def test_missing_attribute(self, env):
        env["ns"] = SimpleNamespace()
        with pytest.raises(AttributeError):
            env["ns"].missing

    def test_repr_and_dir(self, env):
        env["ns"] = SimpleNamespace(a=1)
        assert repr(env["ns"]) == "namespace(a=1)"
        assert "a" in dir(env["ns"])
