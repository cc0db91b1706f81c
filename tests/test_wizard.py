import pytest

from services.p2p_offer import WizardStateMachine


def test_starts_at_first_step():
    wizard = WizardStateMachine(total_steps=3)
    assert wizard.current_step == 1
    assert not wizard.can_continue()


@pytest.mark.asyncio
async def test_next_requires_complete_step():
    wizard = WizardStateMachine(total_steps=3)

    assert not await wizard.next_step()
    assert wizard.current_step == 1

    wizard.mark_step_complete(1)
    assert await wizard.next_step()
    assert wizard.current_step == 2
    assert wizard.is_step_complete(1)


def test_mark_step_complete_is_idempotent():
    wizard = WizardStateMachine(total_steps=3)
    wizard.mark_step_complete(2)
    wizard.mark_step_complete(2)
    assert wizard.completed_steps == {2}


def test_unknown_step_is_not_marked():
    wizard = WizardStateMachine(total_steps=3)
    wizard.mark_step_complete(7)
    assert wizard.completed_steps == set()


def test_back_always_allowed():
    wizard = WizardStateMachine(total_steps=5)
    wizard.current_step = 4

    assert wizard.go_to_step(1)
    assert wizard.current_step == 1
    # Отметок нет: вперёд через незавершённые шаги не пускает
    assert not wizard.go_to_step(4)


def test_forward_jump_needs_intermediate_steps():
    wizard = WizardStateMachine(total_steps=5)
    wizard.mark_step_complete(1)
    wizard.mark_step_complete(2)

    assert not wizard.go_to_step(4)
    wizard.mark_step_complete(3)
    assert wizard.go_to_step(4)
    assert wizard.current_step == 4


@pytest.mark.parametrize("step", [0, 6])
def test_out_of_range_steps_rejected(step):
    wizard = WizardStateMachine(total_steps=5)
    assert not wizard.go_to_step(step)
    assert wizard.current_step == 1


def test_prev_step_on_first_step_is_noop():
    wizard = WizardStateMachine(total_steps=3)
    assert not wizard.prev_step()
    assert wizard.current_step == 1


@pytest.mark.asyncio
async def test_last_step_triggers_submit():
    calls = []

    async def on_submit():
        calls.append("submit")

    wizard = WizardStateMachine(total_steps=2, on_submit=on_submit)
    wizard.mark_step_complete(1)
    await wizard.next_step()

    assert not await wizard.next_step()
    assert calls == ["submit"]
    assert wizard.current_step == 2


def test_can_complete_only_on_last_step_when_idle():
    wizard = WizardStateMachine(total_steps=2)
    wizard.mark_step_complete(1)
    assert not wizard.can_complete(submitting=False)

    wizard.go_to_step(2)
    wizard.mark_step_complete(2)
    assert wizard.can_complete(submitting=False)
    assert not wizard.can_complete(submitting=True)


def test_sync_step_unmarks_invalid_step():
    wizard = WizardStateMachine(total_steps=3)
    wizard.sync_step(2, True)
    assert wizard.is_step_complete(2)
    wizard.sync_step(2, False)
    assert not wizard.is_step_complete(2)


def test_reset():
    wizard = WizardStateMachine(total_steps=3)
    wizard.mark_step_complete(1)
    wizard.go_to_step(2)
    wizard.reset()
    assert wizard.current_step == 1
    assert wizard.completed_steps == set()


def test_needs_at_least_one_step():
    with pytest.raises(ValueError):
        WizardStateMachine(total_steps=0)
