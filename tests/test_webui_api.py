from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from bftree.webui import ProgramStore, create_app


class WebUIProgramApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = ProgramStore()
        self.client = TestClient(create_app(self.store))

    def _create_program(self, *, code: str = "+.", **payload):
        body = {"code": code}
        body.update(payload)
        response = self.client.post("/api/programs", json=body)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_create_program_returns_printed_source(self) -> None:
        data = self._create_program(code="++ add two [-] clear")
        self.assertIn("program_id", data)
        self.assertEqual(data["source"], "++[-]\n")
        self.assertEqual(data["node_count"], 3)
        self.assertFalse(data["strict"])
        self.assertEqual(len(self.store), 1)

    def test_strict_parse_error_is_unprocessable(self) -> None:
        response = self.client.post("/api/programs", json={"code": "[", "strict": True})
        self.assertEqual(response.status_code, 422, response.text)
        self.assertIn("Unmatched '['", response.json()["detail"])

    def test_get_program(self) -> None:
        data = self._create_program(code="+")
        response = self.client.get(f"/api/programs/{data['program_id']}")
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["source"], "+\n")

    def test_unknown_program(self) -> None:
        response = self.client.get("/api/programs/missing")
        self.assertEqual(response.status_code, 404)
        self.assertIn("Unknown program id", response.json()["detail"])

    def test_tree(self) -> None:
        data = self._create_program(code="++[->+<][-]")
        response = self.client.get(f"/api/programs/{data['program_id']}/tree")
        self.assertEqual(response.status_code, 200, response.text)
        tree = response.json()
        self.assertEqual(tree["type"], "program")
        self.assertEqual(tree["children"][0], {"type": "command", "command": "increment", "repeat": 2})
        self.assertEqual(tree["children"][1]["type"], "loop")
        self.assertEqual(len(tree["children"][1]["children"]), 4)
        self.assertEqual(tree["children"][2]["command"], "clear_cell")

    def test_evaluate(self) -> None:
        data = self._create_program(code="++++++++[>++++++++<-]>.")
        response = self.client.post(
            f"/api/programs/{data['program_id']}/evaluate",
            json={"tape_size": 2},
        )
        self.assertEqual(response.status_code, 200, response.text)
        payload = response.json()
        self.assertEqual(payload["output"], "@")
        self.assertEqual(payload["output_bytes"], [64])
        self.assertEqual(payload["pointer"], 1)
        self.assertEqual(payload["tape_start"], 0)
        self.assertEqual(payload["tape_window"], [0, 64])

    def test_evaluate_with_input(self) -> None:
        data = self._create_program(code=",.")
        response = self.client.post(
            f"/api/programs/{data['program_id']}/evaluate",
            json={"input": "A"},
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["output"], "A")

    def test_same_tree_evaluates_repeatedly(self) -> None:
        data = self._create_program(code=",.")
        url = f"/api/programs/{data['program_id']}/evaluate"
        first = self.client.post(url, json={"input": "x"}).json()
        second = self.client.post(url, json={"input": "x"}).json()
        self.assertEqual(first["output"], second["output"])

    def test_tape_overflow_is_unprocessable(self) -> None:
        data = self._create_program(code=">>")
        response = self.client.post(
            f"/api/programs/{data['program_id']}/evaluate",
            json={"tape_size": 2},
        )
        self.assertEqual(response.status_code, 422, response.text)

    def test_input_exhausted_with_error_policy(self) -> None:
        data = self._create_program(code=",")
        response = self.client.post(
            f"/api/programs/{data['program_id']}/evaluate",
            json={"eof": "ERROR"},
        )
        self.assertEqual(response.status_code, 422, response.text)
        self.assertIn("exhausted", response.json()["detail"])

    def test_invalid_eof_policy_rejected(self) -> None:
        data = self._create_program(code=",")
        response = self.client.post(
            f"/api/programs/{data['program_id']}/evaluate",
            json={"eof": "sometimes"},
        )
        self.assertEqual(response.status_code, 422, response.text)

    def test_step_limit_conflict(self) -> None:
        data = self._create_program(code="+[]")
        response = self.client.post(
            f"/api/programs/{data['program_id']}/evaluate",
            json={"max_steps": 50},
        )
        self.assertEqual(response.status_code, 409, response.text)
        self.assertIn("detail", response.json())

    def test_compile(self) -> None:
        data = self._create_program(code="[-]")
        response = self.client.post(
            f"/api/programs/{data['program_id']}/compile",
            json={"tape_size": 16},
        )
        self.assertEqual(response.status_code, 200, response.text)
        c_source = response.json()["c_source"]
        self.assertIn("static unsigned char tape[16];", c_source)
        self.assertIn("*ptr = 0;", c_source)

    def test_tape_size_upper_bound(self) -> None:
        data = self._create_program(code="+")
        for action in ("evaluate", "compile"):
            with self.subTest(action=action):
                response = self.client.post(
                    f"/api/programs/{data['program_id']}/{action}",
                    json={"tape_size": 10**10},
                )
                self.assertEqual(response.status_code, 422, response.text)

    def test_deeply_nested_program(self) -> None:
        code = "+" + "[" * 2000 + "-" + "]" * 2000 + "."
        data = self._create_program(code=code)
        self.assertEqual(data["node_count"], 2003)
        response = self.client.post(f"/api/programs/{data['program_id']}/evaluate", json={})
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["output_bytes"], [0])

    def test_nesting_limit_is_unprocessable(self) -> None:
        response = self.client.post("/api/programs", json={"code": "[" * 10_001})
        self.assertEqual(response.status_code, 422, response.text)
        self.assertIn("nests deeper than", response.json()["detail"])

    def test_delete_program(self) -> None:
        data = self._create_program()
        program_id = data["program_id"]
        response = self.client.delete(f"/api/programs/{program_id}")
        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.client.get(f"/api/programs/{program_id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/programs/{program_id}").status_code, 404)


if __name__ == "__main__":
    unittest.main()
