"""
flexipos: train part-of-speech tagger models from labeled corpora.

Reads CoNLL-U or word_TAG training data, optionally derives n-gram and tag
dictionaries from it, and trains a maxent or perceptron tagger.
"""

__version__ = "1.0.0"

from flexipos.params import AlgorithmType, TrainingParameters
from flexipos.train import POSTaggerTrainerTool, TrainerToolParams, train_pos_tagger
from flexipos.trainer import POSModel

__all__ = [
    'AlgorithmType',
    'POSModel',
    'POSTaggerTrainerTool',
    'TrainerToolParams',
    'TrainingParameters',
    'train_pos_tagger',
    '__version__',
]
