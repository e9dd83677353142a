from assessment_engine.models.assignment import ProctoredSession, SimulationAssignment
from assessment_engine.models.people import Group, GroupMember, Student
from assessment_engine.models.result import OpenAnswerSubmission, SimulationResult
from assessment_engine.models.simulation import Question, QuestionKeyword, QuestionOption, Simulation, SimulationQuestion

__all__ = [
    'Group',
    'GroupMember',
    'OpenAnswerSubmission',
    'ProctoredSession',
    'Question',
    'QuestionKeyword',
    'QuestionOption',
    'Simulation',
    'SimulationAssignment',
    'SimulationQuestion',
    'SimulationResult',
    'Student',
]
