import logging

from mcq_scraper.runlog import RunLog, prompt_for_inputs


class TestRunLog:
    def test_lines_are_forwarded_to_logging(self, caplog):
        """Should log WARN lines as warnings and other tags as info"""
        with caplog.at_level(logging.INFO, logger="mcq_scraper"):
            log = RunLog()
            log.append_line("Found 3 option groups", "FIND")
            log.warn("API failed")

        levels = [(record.levelno, record.getMessage()) for record in caplog.records]
        assert levels == [
            (logging.INFO, "[FIND] Found 3 option groups"),
            (logging.WARNING, "[WARN] API failed"),
        ]
        assert log.has_warnings()

    def test_sink_receives_every_event(self):
        seen = []
        log = RunLog(sink=seen.append)
        log.append_line("All done!", "DONE")
        assert [(event.tag, event.text) for event in seen] == [("DONE", "All done!")]
        assert seen[0].format().endswith("[DONE] All done!")


class TestPromptForInputs:
    DEFAULTS = {"filename": "Blood-Circulation", "subject": "Blood Circulation"}

    def test_defaults_without_prompting(self):
        def ask(prompt):
            raise AssertionError("should not prompt")

        assert prompt_for_inputs(self.DEFAULTS, ask=ask) == self.DEFAULTS

    def test_blank_answer_keeps_default(self):
        """Should only override the values the user actually typed"""
        answers = iter(["heart-quiz", "  "])
        prompts = []

        def ask(prompt):
            prompts.append(prompt)
            return next(answers)

        result = prompt_for_inputs(self.DEFAULTS, interactive=True, ask=ask)

        assert result == {"filename": "heart-quiz", "subject": "Blood Circulation"}
        assert prompts[0] == "Output filename [Blood-Circulation]: "
