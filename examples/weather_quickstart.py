import numpy as np
from time import perf_counter

from id3mat import ID3Classifier, enable_logging

# Quinlan's "play tennis" data, integer coded
# outlook: 0=sunny 1=overcast 2=rain | temp: 0=hot 1=mild 2=cool
# humidity: 0=high 1=normal | wind: 0=weak 1=strong | play: 0=no 1=yes
feature_names = ["outlook", "temp", "humidity", "wind"]
X = np.array([
    [0, 0, 0, 0], [0, 0, 0, 1], [1, 0, 0, 0], [2, 1, 0, 0], [2, 2, 1, 0],
    [2, 2, 1, 1], [1, 2, 1, 1], [0, 1, 0, 0], [0, 2, 1, 0], [2, 1, 1, 0],
    [0, 1, 1, 1], [1, 1, 0, 1], [1, 0, 1, 0], [2, 1, 0, 1],
])
y = np.array([0, 0, 1, 1, 1, 0, 1, 0, 1, 1, 1, 1, 1, 0])

with enable_logging(level="DEBUG"):
    t0 = perf_counter()
    clf = ID3Classifier(feature_names=feature_names).fit(X, y)
    print(f"Training time: {perf_counter() - t0:.4f}s")

clf.print_tree(class_names=["no", "yes"])
for rule in clf.export_rules(class_names=["no", "yes"]):
    print(rule)

nodes, edges = clf.to_matrices()
print("nodes:\n", nodes)
print("edges:\n", edges)
print("training accuracy:", clf.score(X, y))
