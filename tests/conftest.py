import os
import sys

#helper modules such as tutils live next to the tests
sys.path.insert(0, os.path.dirname(__file__))
