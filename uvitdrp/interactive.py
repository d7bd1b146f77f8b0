"""
Operator prompts used by interactive reductions. Every function takes the prompt callable
as an argument (default: input) so the prompts can be scripted.
"""
from uvitdrp.offsets import SOURCE_VIS, SOURCE_UV
from uvitdrp.params import ParameterException

source_names = {
    "VIS": "visible channel",
    "UV": "UV self-tracked",
    "NONE": "UV self-tracked (unusable, unregistered)",
}


def ask_yes_no(question, prompt=input):
    """
    Asks until the answer is y or n

    Args:
        question (str): text shown to the operator
        prompt (callable): function that shows a string and returns the reply

    Returns:
        bool: True for yes
    """
    while True:
        answer = prompt("{0} (y/n) ".format(question)).strip().lower()
        if answer[:1] == "y":
            return True
        if answer[:1] == "n":
            return False
        print("Please answer y or n")


def choose_offset_source(solution, prompt=input):
    """
    Lets the operator overrule the automatic choice of offset source. The DQI is left as the
    automatic choice set it.

    Args:
        solution (uvitdrp.offsets.OffsetSolution): solution from reconcile_offsets(), modified in place
        prompt (callable): function that shows a string and returns the reply

    Returns:
        uvitdrp.offsets.OffsetSolution: the same solution, possibly with a different source
    """
    availability = solution.availability
    print("UV offsets usable: {0}. Visible offsets usable: {1} ({2:.1%} valid).".format(
        availability.uv_available, availability.vis_available, availability.vis_valid_fraction))
    if ask_yes_no("Using {0} offsets. Keep them?".format(source_names[solution.source]), prompt=prompt):
        return solution

    while True:
        answer = prompt("Use (v)isible channel or (u)v offsets? ").strip().lower()
        if answer[:1] == "v":
            solution.use_source(SOURCE_VIS)
            return solution
        if answer[:1] == "u":
            solution.use_source(SOURCE_UV)
            return solution
        print("Please answer v or u")


def edit_params(params, prompt=input):
    """
    Shows the parameters and lets the operator change editable ones until a blank name is given

    Args:
        params (uvitdrp.params.ReductionParameters): parameters, modified in place
        prompt (callable): function that shows a string and returns the reply

    Returns:
        uvitdrp.params.ReductionParameters: the same parameters
    """
    print(params)
    print("Editable: {0}".format(", ".join(params.editable_fields())))
    while True:
        name = prompt("Parameter to edit (blank when done): ").strip()
        if len(name) == 0:
            return params
        current = getattr(params, name, None)
        value = prompt("New value for {0} [{1}]: ".format(name, current))
        try:
            params.set_field(name, value)
        except ParameterException as e:
            print(e)
