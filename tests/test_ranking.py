from itertools import permutations

from tabulation_core import (
    JudgeRank,
    Score,
    average_ranks,
    compute_category_ranking,
    compute_overall_ranking,
    judge_category_totals,
    placement_title,
    rank_judge_category,
)


def _ranks(rows):
    return {row.contestant_id: row.rank for row in rows}


def _judge_ranks(judge_id, category_id, ranks):
    return [
        JudgeRank(
            judge_id=judge_id,
            category_id=category_id,
            contestant_id=cid,
            total_score=0.0,
            rank=rank,
        )
        for cid, rank in ranks.items()
    ]


def _single_judge_category(category_id, ranks):
    return compute_category_ranking(category_id, _judge_ranks("J1", category_id, ranks))


def _score(judge_id, contestant_id, category_id, criterion_id, value):
    return Score(
        judge_id=judge_id,
        contestant_id=contestant_id,
        category_id=category_id,
        criterion_id=criterion_id,
        raw_score=value,
        weighted_score=value,
    )


def test_two_way_tie_at_top_shares_average_rank():
    out = rank_judge_category("J1", "X", {"C1": 90, "C2": 90, "C3": 70})
    assert _ranks(out) == {"C1": 1.5, "C2": 1.5, "C3": 3.0}


def test_three_way_tie_in_middle_gets_average_of_positions():
    out = rank_judge_category("J1", "X", {"A": 100, "B": 80, "C": 80, "D": 80, "E": 10})
    assert _ranks(out) == {"A": 1.0, "B": 3.0, "C": 3.0, "D": 3.0, "E": 5.0}


def test_no_ties_give_integral_ranks():
    out = rank_judge_category("J1", "X", {"A": 10, "B": 30, "C": 20})
    assert [row.contestant_id for row in out] == ["B", "C", "A"]
    assert all(float(row.rank).is_integer() for row in out)


def test_judge_ranks_do_not_depend_on_input_order():
    items = [("C1", 88.5), ("C2", 91.0), ("C3", 88.5), ("C4", 70.25)]
    expected = _ranks(rank_judge_category("J1", "X", dict(items)))
    for perm in permutations(items):
        assert _ranks(rank_judge_category("J1", "X", dict(perm))) == expected


def test_rank_judge_category_is_idempotent():
    totals = {"C1": 50, "C2": 60, "C3": 60}
    assert rank_judge_category("J1", "X", totals) == rank_judge_category("J1", "X", totals)


def test_empty_inputs_give_empty_rankings():
    assert rank_judge_category("J1", "X", {}) == ()
    assert compute_category_ranking("X", []).rows == ()
    assert compute_overall_ranking([]).rows == ()
    assert compute_overall_ranking([]).leader_points is None


def test_average_ranks_ascending_for_rank_sums():
    assert average_ranks({"A": 4, "B": 2, "C": 4}, descending=False) == {
        "B": 1.0,
        "A": 2.5,
        "C": 2.5,
    }


def test_opposite_judges_tie_everyone_at_middle_placement():
    judge_ranks = _judge_ranks("J1", "X", {"C1": 1, "C2": 2, "C3": 3}) + _judge_ranks(
        "J2", "X", {"C1": 3, "C2": 2, "C3": 1}
    )
    out = compute_category_ranking("X", judge_ranks)
    by_id = out.by_contestant()
    assert {cid: row.rank_sum for cid, row in by_id.items()} == {"C1": 4, "C2": 4, "C3": 4}
    assert {cid: row.placement for cid, row in by_id.items()} == {"C1": 2.0, "C2": 2.0, "C3": 2.0}
    assert out.judge_ids == ("J1", "J2")
    assert by_id["C1"].judge_ranks == (("J1", 1), ("J2", 3))


def test_judge_that_did_not_rank_contestant_adds_nothing():
    judge_ranks = _judge_ranks("J1", "X", {"C1": 1, "C2": 2}) + _judge_ranks("J2", "X", {"C1": 1})
    by_id = compute_category_ranking("X", judge_ranks).by_contestant()
    assert by_id["C1"].rank_sum == 2
    assert by_id["C2"].rank_sum == 2
    assert by_id["C1"].placement == by_id["C2"].placement == 1.5
    assert len(by_id["C2"].judge_ranks) == 1


def test_category_ranking_ignores_other_categories():
    judge_ranks = _judge_ranks("J1", "X", {"C1": 1}) + _judge_ranks("J1", "Y", {"C2": 1})
    out = compute_category_ranking("X", judge_ranks)
    assert [row.contestant_id for row in out.rows] == ["C1"]


def test_overall_sums_category_placements():
    rankings = [
        _single_judge_category("X", {"C1": 1, "C2": 2}),
        _single_judge_category("Y", {"C1": 1, "C2": 2}),
        _single_judge_category("Z", {"C1": 2, "C2": 1}),
    ]
    out = compute_overall_ranking(rankings).by_contestant()
    assert out["C1"].total_points == 4
    assert out["C1"].final_placement == 1.0
    assert out["C1"].categories_counted == 3
    assert out["C2"].total_points == 5
    assert out["C2"].final_placement == 2.0


def test_overall_total_points_equal_sum_of_fractional_placements():
    rankings = [
        _single_judge_category("X", {"A": 1.5, "B": 1.5, "C": 3}),
        _single_judge_category("Y", {"A": 2, "B": 1, "C": 3}),
        _single_judge_category("Z", {"A": 1, "C": 2}),
    ]
    by_category = [r.by_contestant() for r in rankings]
    overall = compute_overall_ranking(rankings)
    for row in overall.rows:
        expected = sum(
            placements[row.contestant_id].placement
            for placements in by_category
            if row.contestant_id in placements
        )
        assert row.total_points == expected
    by_id = overall.by_contestant()
    assert by_id["A"].total_points == 4.5
    assert by_id["B"].total_points == 2.5
    assert by_id["B"].categories_counted == 2
    assert [row.contestant_id for row in overall.rows] == ["B", "A", "C"]


def test_overall_ties_share_average_placement():
    rankings = [
        _single_judge_category("X", {"A": 1, "B": 2, "C": 3}),
        _single_judge_category("Y", {"A": 3, "B": 2, "C": 1}),
    ]
    out = compute_overall_ranking(rankings)
    assert {row.final_placement for row in out.rows} == {2.0}
    assert out.leader_points == 4


def test_raising_a_score_never_worsens_rank_sum():
    fixed_j2 = rank_judge_category("J2", "X", {"C1": 60, "C2": 90, "C3": 75})
    rank_sums = []
    for value in [40, 70, 75, 80, 85, 95, 100]:
        j1 = rank_judge_category("J1", "X", {"C1": 80, "C2": 70, "C3": value})
        ranking = compute_category_ranking("X", list(j1) + list(fixed_j2))
        rank_sums.append(ranking.by_contestant()["C3"].rank_sum)
    assert rank_sums == sorted(rank_sums, reverse=True)
    assert rank_sums[0] > rank_sums[-1]


def test_judge_category_totals_only_count_locked_contestants():
    scores = [
        _score("J1", "C1", "X", "X-a", 40),
        _score("J1", "C1", "X", "X-b", 35.5),
        _score("J1", "C2", "X", "X-a", 50),
        _score("J1", "C2", "X", "X-b", 10),
        _score("J1", "C1", "Y", "Y-a", 99),
        _score("J2", "C1", "X", "X-a", 1),
    ]
    totals = judge_category_totals(scores, {"C1"}, judge_id="J1", category_id="X")
    assert totals == {"C1": 75.5}


def test_judge_category_totals_round_so_float_noise_ties():
    scores = [
        _score("J1", "C1", "X", "X-a", 0.1),
        _score("J1", "C1", "X", "X-b", 0.2),
        _score("J1", "C2", "X", "X-a", 0.3),
        _score("J1", "C2", "X", "X-b", 0.0),
    ]
    totals = judge_category_totals(scores, {"C1", "C2"})
    assert _ranks(rank_judge_category("J1", "X", totals)) == {"C1": 1.5, "C2": 1.5}


def test_locked_contestant_without_scores_is_not_ranked():
    scores = [_score("J1", "C1", "X", "X-a", 10)]
    totals = judge_category_totals(scores, {"C1", "C2"})
    assert set(totals) == {"C1"}


def test_placement_title_maps_integral_podium_only():
    titles = {1: "Winner", 2: "1st Runner-Up", 3: "2nd Runner-Up"}
    assert placement_title(1.0, titles) == "Winner"
    assert placement_title(2, titles) == "1st Runner-Up"
    assert placement_title(3.0, titles) == "2nd Runner-Up"
    assert placement_title(1.5, titles) is None
    assert placement_title(4.0, titles) is None
