import numpy as np
from conftest import TOPICS_TEXT
from sklearn.metrics import accuracy_score, confusion_matrix

from sparselin.classify import LinearClassifier
from sparselin.evaluation import cross_validate, evaluate_instances, holdout_evaluation, split_groups
from sparselin.training import trainer_factory


def test_split_groups_round_robin(make_dataset):
    data = make_dataset("binary", "".join(f"1\tA{i}\n" for i in range(10)))
    assert split_groups(data, 3) == 3
    assert [instance.group for instance in data] == [0, 1, 2, 0, 1, 2, 0, 1, 2, 0]


def test_evaluate_with_zero_weights_predicts_first_label(topics_data):
    topics_data.finalize()
    evaluation = evaluate_instances(topics_data, np.zeros(topics_data.num_features), topics_data)
    assert evaluation.accuracy.num_total == 9
    assert evaluation.accuracy.num_match == 3
    assert evaluation.confusion.matrix[:, 0].tolist() == [3, 3, 3]
    assert set(evaluation.labelwise()) == {"sport", "politics", "weather"}


def test_label_scores_follow_sklearn(make_dataset):
    data = make_dataset("multiclass", TOPICS_TEXT)
    data.finalize()
    weights = np.zeros(data.num_features)
    weights[data.feature_generator.forward(data.attributes.lookup("rain"), data.labels.lookup("weather"))] = 1.0
    evaluation = evaluate_instances(data, weights, data)

    references = [instance.true_label() for instance in data]
    cls = LinearClassifier(weights, data.feature_generator)
    predictions = []
    for instance in data:
        cls.classify(instance)
        predictions.append(cls.label(cls.argmax))

    expected = confusion_matrix(references, predictions, labels=list(range(data.num_labels)))
    assert np.array_equal(evaluation.confusion.matrix, expected)
    assert evaluation.accuracy.num_match == int(accuracy_score(references, predictions, normalize=False))
    assert evaluation.accuracy.num_match == 5
    assert evaluation.precall.num_reference.tolist() == expected.sum(axis=1).tolist()


def test_ranking_reports_accuracy_only(ranking_data):
    ranking_data.finalize()
    evaluation = holdout_evaluation(ranking_data, np.zeros(ranking_data.num_features), 0)
    assert evaluation.accuracy_only
    assert set(evaluation.summary()) == {"accuracy"}


def test_cross_validation_folds_are_independent(make_dataset):
    data = make_dataset("multiclass", TOPICS_TEXT * 2)
    split_groups(data, 3)
    make_trainer = trainer_factory("lbfgs.logistic")

    sequential = cross_validate(data, make_trainer, 3, n_jobs=1)
    threaded = cross_validate(data, make_trainer, 3, n_jobs=3)

    assert [fold.fold for fold in sequential.folds] == [0, 1, 2]
    for left, right in zip(sequential.folds, threaded.folds):
        assert np.array_equal(left.weights, right.weights)
        assert left.evaluation.summary() == right.evaluation.summary()

    pooled = sequential.pooled()
    assert pooled.accuracy.num_total == len(data)
    assert pooled.accuracy.value == 1.0
    assert sequential.mean()["accuracy"] == 1.0
