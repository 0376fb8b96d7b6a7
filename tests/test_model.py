import io

import numpy as np
import pytest
from conftest import BINARY_TEXT, RANKING_TEXT, TOPICS_TEXT

from sparselin.data import BIAS_ATTRIBUTE
from sparselin.errors import InvalidModelError
from sparselin.evaluation import holdout_evaluation
from sparselin.model import read_model, tag, write_model
from sparselin.reader import read_stream
from sparselin.training import create_trainer


def trained(data, algorithm="lbfgs.logistic"):
    trainer = create_trainer(algorithm)
    trainer.train(data)
    return trainer.weights


def test_binary_round_trip_with_bias(tmp_path, make_dataset):
    data = make_dataset("binary", BINARY_TEXT, bias=2.0)
    weights = trained(data)
    path = tmp_path / "binary.model"
    written = write_model(path, data, weights)

    lines = path.read_text(encoding="utf8").splitlines()
    assert lines[0] == "@classias\tlinear\tbinary"
    assert len(lines) == written + 1
    bias_line = next(line for line in lines if line.endswith(BIAS_ATTRIBUTE))
    assert float(bias_line.split("\t")[0]) == pytest.approx(2.0 * weights[0])

    model = read_model(path, bias=2.0)
    assert model.kind == "binary"
    for name in ["A", "B", BIAS_ATTRIBUTE]:
        assert model.weights[model.attributes.lookup(name)] == pytest.approx(weights[data.attributes.lookup(name)])


def test_multi_round_trip_and_tagging(tmp_path, make_dataset):
    data = make_dataset("multiclass", TOPICS_TEXT, bias=1.0)
    weights = trained(data)
    path = tmp_path / "topics.model"
    write_model(path, data, weights)

    text = path.read_text(encoding="utf8")
    assert text.startswith("@classias\tlinear\tmulti\tsparse\n@label\tsport\n@label\tpolitics\n@label\tweather\n")

    model = read_model(path)
    assert list(model.labels) == ["sport", "politics", "weather"]

    fresh = model.new_dataset("multiclass", ["-1", "O"], bias=1.0)
    read_stream(io.StringIO(TOPICS_TEXT + "sport\tball\tunseen\n"), fresh)
    output = io.StringIO()
    evaluation = tag(fresh, model, output)

    predicted = output.getvalue().splitlines()
    assert predicted == [line.split("\t")[0] for line in TOPICS_TEXT.splitlines()] + ["sport"]
    assert evaluation.accuracy.value == 1.0
    assert evaluation.accuracy.value == holdout_evaluation(data, weights, 0).accuracy.value


def test_tagging_unknown_label_counts_as_miss(tmp_path, make_dataset):
    data = make_dataset("multiclass", TOPICS_TEXT)
    path = tmp_path / "topics.model"
    write_model(path, data, trained(data))
    model = read_model(path)

    fresh = model.new_dataset("multiclass", ["O"])
    read_stream(io.StringIO("sports\tball\n"), fresh)
    evaluation = tag(fresh, model)
    assert evaluation.accuracy.num_total == 1
    assert evaluation.accuracy.num_match == 0


def test_ranking_round_trip(tmp_path, make_dataset):
    data = make_dataset("ranking", RANKING_TEXT)
    weights = trained(data, "averaged_perceptron")
    path = tmp_path / "ranking.model"
    write_model(path, data, weights)

    model = read_model(path)
    assert model.kind == "ranking"
    fresh = model.new_dataset("ranking", [])
    read_stream(io.StringIO(RANKING_TEXT), fresh)
    assert tag(fresh, model).accuracy.value == 1.0


def test_zero_weights_are_not_written(tmp_path, make_dataset):
    data = make_dataset("binary", BINARY_TEXT)
    data.finalize()
    assert write_model(tmp_path / "empty.model", data, np.zeros(data.num_features)) == 0
    model = read_model(tmp_path / "empty.model")
    assert len(model.weights) == 0


def test_incompatible_task(tmp_path, make_dataset):
    data = make_dataset("binary", BINARY_TEXT)
    path = tmp_path / "binary.model"
    write_model(path, data, trained(data))
    with pytest.raises(InvalidModelError):
        read_model(path).new_dataset("ranking", [])


@pytest.mark.parametrize(
    "text",
    [
        "",
        "@model\tlinear\tbinary\n",
        "@classias\tlinear\tcrf\n",
        "@classias\tlinear\tbinary\n0.5\n",
        "@classias\tlinear\tbinary\nheavy\tA\n",
        "@classias\tlinear\tmulti\tsparse\n@label\ta\n0.5\tx\tb\n",
    ],
)
def test_malformed_models(text):
    with pytest.raises(InvalidModelError):
        read_model(io.StringIO(text))
