import unittest
from unittest import mock

from grid import ZipGrid
from solver import DEFAULT_NODE_BUDGET, SolveStatus, SolverConfig, ZipSolver, solve, validate_path

SNAKE_5X5 = [
    [1, None, 3, None, None],
    [None, None, None, None, None],
    [None, None, None, 4, None],
    [None, None, None, None, None],
    [None, 2, None, None, 5],
]
SNAKE_5X5_WALLS = {
    "1,1": {"left": True},
    "2,2": {"left": True},
    "3,3": {"left": True},
    "2,4": {"left": True},
}


def _assert_valid_solution(case: unittest.TestCase, grid: ZipGrid, result) -> None:
    case.assertTrue(result.success, result.message)
    case.assertEqual(validate_path(grid, result.path), [])
    case.assertEqual(len(result.path), grid.passable_count)
    case.assertEqual(len(set(result.path)), len(result.path))


class ScenarioTests(unittest.TestCase):
    def test_single_row_of_numbers_is_walked_left_to_right(self) -> None:
        result = solve([[1, 2, 3, 4, 5]])
        self.assertEqual(result.status, SolveStatus.SOLVED)
        self.assertEqual(result.path, ((0, 0), (0, 1), (0, 2), (0, 3), (0, 4)))

    def test_wall_separating_start_from_end_exhausts_search(self) -> None:
        result = solve([[1, None, None, 2]], {"0,2": {"left": True}})
        self.assertEqual(result.status, SolveStatus.SEARCH_EXHAUSTED)
        self.assertIsNone(result.path)
        self.assertEqual(result.nodes_pruned, 1)

    def test_separated_grid_is_exhausted_not_over_budget(self) -> None:
        result = solve([[1, None, None, 2]], {"0,2": {"left": True}}, node_budget=1)
        self.assertEqual(result.status, SolveStatus.SEARCH_EXHAUSTED)

    def test_open_three_by_three(self) -> None:
        rows = [[1, None, None], [None, None, None], [None, None, 9]]
        result = solve(rows)
        _assert_valid_solution(self, ZipGrid.from_rows(rows), result)
        self.assertEqual(len(result.path), 9)
        self.assertEqual(result.path[0], (0, 0))
        self.assertEqual(result.path[-1], (2, 2))

    def test_walled_in_cell_makes_full_coverage_impossible(self) -> None:
        walls = {
            (0, 1): {"bottom": True},
            (1, 1): {"bottom": True, "left": True},
            (1, 2): {"left": True},
        }
        result = solve([[1, None, None], [None, None, None], [None, None, 2]], walls)
        self.assertFalse(result.success)
        self.assertEqual(result.status, SolveStatus.SEARCH_EXHAUSTED)
        self.assertIsNone(result.path)

    def test_blocked_terrain_is_skipped(self) -> None:
        result = solve([[1, None, None], ["WALL", 2, None]])
        self.assertEqual(result.path, ((0, 0), (0, 1), (0, 2), (1, 2), (1, 1)))
        self.assertEqual(result.passable_cells, 5)

    def test_walled_snake(self) -> None:
        grid = ZipGrid.from_rows(SNAKE_5X5, SNAKE_5X5_WALLS)
        result = solve(grid)
        _assert_valid_solution(self, grid, result)
        for a, b in zip(result.path, result.path[1:]):
            self.assertFalse(grid.wall_between(a, b))

    def test_gap_in_numbers_follows_the_numbers_present(self) -> None:
        result = solve([[1, None, 3]])
        self.assertTrue(result.success, result.message)
        self.assertEqual(result.path, ((0, 0), (0, 1), (0, 2)))

    def test_sparse_numbers_on_open_grid(self) -> None:
        rows = [[1, None, 4], [None, None, None], [None, None, 9]]
        grid = ZipGrid.from_rows(rows)
        _assert_valid_solution(self, grid, solve(rows))

    def test_skipping_ahead_to_a_later_number_is_illegal(self) -> None:
        result = solve([[1, 3, 2]])
        self.assertEqual(result.status, SolveStatus.SEARCH_EXHAUSTED)

    def test_solutions_are_deterministic(self) -> None:
        first = solve(SNAKE_5X5, SNAKE_5X5_WALLS)
        second = solve(SNAKE_5X5, SNAKE_5X5_WALLS)
        self.assertEqual(first.path, second.path)
        self.assertEqual(first.nodes_expanded, second.nodes_expanded)

    def test_long_corridor_exceeds_default_recursion_depth(self) -> None:
        row = [None] * 1100
        row[0], row[-1] = 1, 2
        result = solve([row])
        self.assertTrue(result.success)
        self.assertEqual(len(result.path), 1100)


class InputErrorTests(unittest.TestCase):
    def test_non_rectangular_grid(self) -> None:
        result = solve([[1, None], [2]])
        self.assertEqual(result.status, SolveStatus.INVALID_INPUT)
        self.assertIn("rectangular", result.message)
        self.assertEqual(result.nodes_expanded, 0)

    def test_missing_start(self) -> None:
        result = solve([[None, 2, 3]])
        self.assertEqual(result.status, SolveStatus.NO_START_OR_END)

    def test_no_numbers_at_all(self) -> None:
        result = solve([[None, None]])
        self.assertEqual(result.status, SolveStatus.NO_START_OR_END)

    def test_malformed_wall_keys_and_records(self) -> None:
        for walls in ({("a", "b"): {"left": True}}, {5: {"left": True}}, {"0,1": True}, [("0,1", {"left": True})]):
            with self.subTest(walls=walls):
                result = solve([[1, None, 2]], walls)
                self.assertEqual(result.status, SolveStatus.INVALID_INPUT)
                self.assertIsNone(result.path)

    def test_row_that_is_not_a_list(self) -> None:
        for rows in ([[1, 2], None], [[1, 2], "12"], None):
            with self.subTest(rows=rows):
                self.assertEqual(solve(rows).status, SolveStatus.INVALID_INPUT)

    def test_duplicate_number(self) -> None:
        result = solve([[1, 2, 2]])
        self.assertEqual(result.status, SolveStatus.INVALID_INPUT)

    def test_explicit_max_number(self) -> None:
        rows = [[1, None, None], [None, None, None], [None, None, 9]]
        self.assertTrue(solve(rows, max_number=9).success)
        self.assertEqual(solve(rows, max_number=10).status, SolveStatus.NO_START_OR_END)
        self.assertEqual(solve([[1, 2, 3]], max_number=2).status, SolveStatus.INVALID_INPUT)

    def test_prepared_grid_cannot_take_extra_walls(self) -> None:
        grid = ZipGrid.from_rows([[1, 2]])
        with self.assertRaises(ValueError):
            solve(grid, {"0,0": {"bottom": True}})


class SearchLimitTests(unittest.TestCase):
    OPEN_3X3 = [[1, None, None], [None, None, None], [None, None, 9]]

    def test_budget_exhaustion_is_reported(self) -> None:
        result = solve(self.OPEN_3X3, node_budget=1)
        self.assertEqual(result.status, SolveStatus.BUDGET_EXCEEDED)
        self.assertIsNone(result.path)
        self.assertEqual(result.nodes_expanded, 2)

    def test_cancel_callback_stops_search(self) -> None:
        result = solve(self.OPEN_3X3, should_cancel=lambda: True)
        self.assertEqual(result.status, SolveStatus.CANCELLED)
        self.assertEqual(result.nodes_expanded, 1)

    def test_expired_deadline_stops_search(self) -> None:
        result = solve(self.OPEN_3X3, timeout=0.0)
        self.assertEqual(result.status, SolveStatus.CANCELLED)

    def test_default_budget(self) -> None:
        self.assertEqual(SolverConfig().node_budget, DEFAULT_NODE_BUDGET)


class SearchDriverTests(unittest.TestCase):
    def test_moves_sorted_toward_next_waypoint_with_stable_ties(self) -> None:
        grid = ZipGrid.from_rows([[None, None, 2], [None, 1, None], [None, None, 3]])
        solver = ZipSolver(grid)
        moves = solver._ordered_moves((1, 1), 1)
        self.assertEqual([pos for pos, _ in moves], [(1, 2), (0, 1), (1, 0), (2, 1)])

    def test_only_the_next_number_may_be_entered(self) -> None:
        grid = ZipGrid.from_rows([[3, 1, 2]])
        solver = ZipSolver(grid)
        self.assertEqual(solver._ordered_moves((0, 1), 1), [((0, 2), 2)])

    def test_next_number_skips_absent_numbers(self) -> None:
        grid = ZipGrid.from_rows([[3, 1, 7]])
        solver = ZipSolver(grid)
        self.assertEqual(solver._ordered_moves((0, 1), 1), [((0, 0), 3)])
        self.assertEqual(solver._ordered_moves((0, 1), 3), [((0, 2), 7)])

    def test_graph_is_built_once_per_solve(self) -> None:
        grid = ZipGrid.from_rows(SNAKE_5X5, SNAKE_5X5_WALLS)
        build = ZipGrid.to_graph
        with mock.patch.object(ZipGrid, "to_graph", autospec=True, side_effect=build) as to_graph:
            self.assertTrue(ZipSolver(grid).run().success)
        self.assertEqual(to_graph.call_count, 1)

    def test_walls_remove_moves(self) -> None:
        grid = ZipGrid.from_rows([[1, None, 2]], {(0, 1): {"left": True}})
        solver = ZipSolver(grid)
        self.assertEqual(solver._ordered_moves((0, 0), 1), [])

    def test_state_is_restored_after_search(self) -> None:
        grid = ZipGrid.from_rows(SNAKE_5X5, SNAKE_5X5_WALLS)
        solver = ZipSolver(grid)
        result = solver.run()
        self.assertTrue(result.success)
        self.assertEqual(solver._path, [grid.start])
        self.assertEqual(solver._visited, {grid.start})


class ValidatePathTests(unittest.TestCase):
    def setUp(self) -> None:
        self.grid = ZipGrid.from_rows([[1, None], [3, 2]], {(0, 0): {"bottom": True}})

    def test_valid_path(self) -> None:
        self.assertEqual(validate_path(self.grid, [(0, 0), (0, 1), (1, 1), (1, 0)]), [])

    def test_empty_path(self) -> None:
        self.assertEqual(validate_path(self.grid, []), ["Path is empty"])

    def test_wall_crossing_detected(self) -> None:
        problems = validate_path(self.grid, [(0, 0), (1, 0), (1, 1), (0, 1)])
        self.assertTrue(any("crosses a wall" in p for p in problems))

    def test_jump_detected(self) -> None:
        problems = validate_path(self.grid, [(0, 0), (1, 1), (0, 1), (1, 0)])
        self.assertTrue(any("not between neighbours" in p for p in problems))

    def test_short_path_detected(self) -> None:
        problems = validate_path(self.grid, [(0, 0), (0, 1)])
        self.assertTrue(any("covers 2 cells" in p for p in problems))
        self.assertTrue(any("ends at" in p for p in problems))


if __name__ == "__main__":
    unittest.main()
