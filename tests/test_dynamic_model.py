import pytest
from werkzeug.datastructures import MultiDict

from dynamic_model import DynamicModel
from errors import ConfigurationError, UsageError, ValidationError
from models import ModelConfig, Statement, TableBinding


class Orders(DynamicModel):
    binding = TableBinding("orders", "id", "number")

    def __init__(self, model_config):
        super().__init__(model_config)
        self.calls = []
        self.refuse = False

    def validate(self, record):
        if record is not None:
            self.validates_presence_of(record.get("number"), "number is required")

    def before_save(self, record):
        self.calls.append(("before_save", dict(record)))
        return not self.refuse

    def before_delete(self, record):
        self.calls.append(("before_delete", record))
        return not self.refuse

    def inserted(self, record):
        self.calls.append(("inserted", dict(record)))

    def updated(self, record):
        self.calls.append(("updated", dict(record)))

    def deleted(self, record):
        self.calls.append(("deleted", record))


@pytest.fixture
def model(sqlite_driver):
    return Orders(ModelConfig(driver=sqlite_driver))


def test_missing_binding_is_a_configuration_error(recording_driver):
    with pytest.raises(ConfigurationError):
        DynamicModel(ModelConfig(driver=recording_driver))
    with pytest.raises(ConfigurationError):
        DynamicModel(ModelConfig(driver=recording_driver, binding=TableBinding("t", "")))


def test_identifier_checks_on_binding(recording_driver):
    with pytest.raises(UsageError):
        DynamicModel(ModelConfig(driver=recording_driver, binding=TableBinding("t; drop", "id"),
                                 validate_identifiers=True))


def test_insert_scenario(fake_orders, recording_driver):
    recording_driver.results.extend([1, [{"newID": 41}]])
    record = fake_orders.insert({"number": "Ann", "not_a_column": 1})
    sql, params = recording_driver.log[0]
    assert sql == "INSERT INTO orders (number) VALUES (:p0)"
    assert params == {"p0": "Ann"}
    assert recording_driver.log[1][0] == "SELECT @@IDENTITY AS newID"
    assert record == {"number": "Ann", "id": 41}


def test_insert_sets_generated_key(model):
    record = model.insert({"number": "A-1", "status": "open"})
    assert record["id"] == 1
    assert model.single(key=1)["number"] == "A-1"
    assert [c[0] for c in model.calls] == ["before_save", "inserted"]
    assert model.calls[-1][1]["id"] == 1


def test_insert_validation_error_lists_messages(model):
    with pytest.raises(ValidationError) as info:
        model.insert({"status": "open"})
    assert info.value.errors == ["number is required"]
    assert "Can't insert: number is required" == str(info.value)
    assert model.errors == ["number is required"]
    assert model.count() == 0


def test_errors_are_reset_on_each_pass(model):
    with pytest.raises(ValidationError):
        model.insert({"status": "open"})
    model.insert({"number": "A-1"})
    assert model.errors == []


def test_refused_insert_returns_none(model):
    model.refuse = True
    assert model.insert({"number": "A-1"}) is None
    assert model.count() == 0
    assert [c[0] for c in model.calls] == ["before_save"]


def test_update(seeded):
    model = Orders(ModelConfig(driver=seeded.driver))
    assert model.update({"number": "A-1", "status": "closed", "total": None}, 1) == 1
    row = model.single(key=1)
    assert row["status"] == "closed"
    assert row["total"] == pytest.approx(10.5)
    assert model.calls[-1][0] == "updated"


def test_update_refused(seeded):
    model = Orders(ModelConfig(driver=seeded.driver))
    model.refuse = True
    assert model.update({"number": "A-1", "status": "closed"}, 1) == 0
    assert model.single(key=1)["status"] == "open"


def test_delete_by_key_runs_hooks_with_row(seeded):
    model = Orders(ModelConfig(driver=seeded.driver))
    assert model.delete(key=2) == 1
    assert model.single(key=2) is None
    names = [c[0] for c in model.calls]
    assert names == ["before_delete", "deleted"]
    assert model.calls[0][1]["number"] == "A-2"


def test_delete_by_where(seeded):
    model = Orders(ModelConfig(driver=seeded.driver))
    assert model.delete(where="status = @0", args=["closed"]) == 2
    assert model.calls == [("before_delete", None), ("deleted", None)]
    assert model.count() == 3


def test_delete_refused(seeded):
    model = Orders(ModelConfig(driver=seeded.driver))
    model.refuse = True
    assert model.delete(key=1) == 0
    assert model.count() == 5


def test_save_inserts_and_updates_in_one_batch(seeded):
    model = Orders(ModelConfig(driver=seeded.driver))
    affected = model.save({"number": "A-6"}, {"id": 1, "number": "A-1", "status": "closed"})
    assert affected == 2
    assert model.count() == 6
    assert model.single(key=1)["status"] == "closed"
    assert [c[0] for c in model.calls if c[0] != "before_save"] == ["inserted", "updated"]


def test_save_validates_everything_first(seeded):
    model = Orders(ModelConfig(driver=seeded.driver))
    with pytest.raises(ValidationError) as info:
        model.save({"number": "A-6"}, {"status": "open"})
    assert str(info.value) == "Can't save this item: number is required"
    assert model.count() == 5


def test_build_commands(fake_orders):
    commands = fake_orders.build_commands({"number": "N"}, {"id": 3, "number": "M"}, {"id": None, "number": "O"})
    assert [c.sql.split()[0] for c in commands] == ["INSERT", "UPDATE", "INSERT"]
    assert commands[1].args == ["M", 3]


def test_all_with_filters(seeded):
    rows = list(seeded.all(where="status = @0", order_by="number DESC", limit=2,
                           columns="number", args=["open"]))
    assert rows == [{"number": "A-4"}, {"number": "A-3"}]


def test_all_is_lazy(seeded, monkeypatch):
    calls = []
    real_open = seeded.driver.open_connection
    monkeypatch.setattr(seeded.driver, "open_connection", lambda: calls.append(1) or real_open())
    rows = seeded.all()
    assert calls == []
    assert len(list(rows)) == 5
    assert calls == [1]


def test_single_by_where(seeded):
    assert seeded.single(where="number = @0", args=["A-3"])["status"] == "open"
    assert seeded.single(where="number = @0", args=["zzz"]) is None
    assert seeded.single() is None


def test_paged(seeded):
    page = seeded.paged(page_size=2, current_page=2)
    assert page.total_records == 5
    assert page.total_pages == 3
    assert [r["number"] for r in page.items] == ["A-3", "A-4"]
    assert "RowNumber" not in page.items[0]


def test_paged_with_where(seeded):
    page = seeded.paged(where="status = @0", order_by="number DESC", columns="id, number",
                        page_size=2, current_page=1, args=["open"])
    assert page.total_records == 3
    assert page.total_pages == 2
    assert page.items == [{"id": 4, "number": "A-4"}, {"id": 3, "number": "A-3"}]


def test_paged_over_sql(seeded):
    page = seeded.paged(sql="SELECT id, number FROM orders WHERE status = 'closed'",
                        primary_key="id", page_size=10)
    assert page.total_records == 2
    assert page.total_pages == 1
    assert [r["number"] for r in page.items] == ["A-2", "A-5"]


def test_paged_empty(orders):
    page = orders.paged()
    assert page.total_records == 0
    assert page.total_pages == 0
    assert page.items == []


def test_key_values(seeded):
    assert seeded.key_values(order_by="number DESC")["1"] == "A-1"
    assert list(seeded.key_values(order_by="number DESC")) == ["5", "4", "3", "2", "1"]


def test_key_values_without_descriptor(sqlite_driver):
    model = DynamicModel(ModelConfig(driver=sqlite_driver, binding=TableBinding("orders", "id")))
    with pytest.raises(ConfigurationError):
        model.key_values()


def test_count(seeded):
    assert seeded.count() == 5
    assert seeded.count("WHERE status = @0", ["open"]) == 3


def test_create_from_form(orders):
    form = MultiDict([("number", "F-1"), ("total", "3.50"), ("csrf_token", "abc")])
    record = orders.create_from(form)
    assert set(record) == {"number", "total"}
    inserted = orders.insert(form)
    assert orders.single(key=inserted["id"])["total"] == pytest.approx(3.5)


def test_default_to(orders):
    record = {"number": "X"}
    orders.default_to("status", "open", record)
    orders.default_to("number", "Y", record)
    assert record == {"number": "X", "status": "open"}


def test_has_primary_key(orders):
    assert orders.has_primary_key({"id": 1})
    assert orders.get_primary_key({"Id": 3}) == 3
    assert not orders.has_primary_key({"number": "x"})


def test_raw_query_and_scalar(seeded):
    assert seeded.scalar("SELECT COUNT(*) FROM orders WHERE status = @0", "open") == 3
    assert [r["number"] for r in seeded.query("SELECT number FROM orders WHERE id < @0 ORDER BY id", 3)] == ["A-1", "A-2"]
    assert seeded.execute(Statement("DELETE FROM orders WHERE id = @0", [1])) == 1


def test_validators(orders):
    orders.errors = []
    orders.validates_presence_of("", "p1")
    orders.validates_presence_of(0, "p2")
    orders.validates_numericality_of("3", "n1")
    orders.validates_numericality_of(True, "n2")
    orders.validates_numericality_of(3.5, "n3")
    orders.validate_is_currency("12.30", "c1")
    orders.validate_is_currency("twelve", "c2")
    orders.validate_is_currency(None, "c3")
    assert orders.errors == ["p1", "n1", "n2", "c2", "c3"]


class GuardedOrders(Orders):
    def validate(self, record):
        self.calls.append(("validate", record))
        if record is None:
            self.errors.append("bulk delete not allowed")


def test_where_delete_is_validated(seeded):
    model = GuardedOrders(ModelConfig(driver=seeded.driver))
    with pytest.raises(ValidationError) as info:
        model.delete(where="status = @0", args=["closed"])
    assert str(info.value) == "Can't delete: bulk delete not allowed"
    assert model.calls == [("validate", None)]
    assert model.count() == 5


def test_delete_of_missing_key_resets_errors(seeded):
    model = Orders(ModelConfig(driver=seeded.driver))
    with pytest.raises(ValidationError):
        model.insert({"status": "open"})
    assert model.delete(key=99) == 0
    assert model.errors == []
