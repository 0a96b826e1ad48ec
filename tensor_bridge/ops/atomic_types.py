class OpType:
    # --- Leaves ---
    INPUT = "Input"
    PARAMETER = "Parameter"
    CONSTANT = "Constant"

    # --- Elementwise binary ---
    PLUS = "Plus"
    MINUS = "Minus"
    ELEMENT_TIMES = "ElementTimes"

    # --- Linear algebra ---
    TIMES = "Times"

    # --- Unary ---
    ALIAS = "Alias"
    NEGATE = "Negate"
    EXP = "Exp"
    SIGMOID = "Sigmoid"
    TANH = "Tanh"
    RELU = "ReLU"

    ELEMENTWISE_BINARY = (PLUS, MINUS, ELEMENT_TIMES)
    UNARY = (ALIAS, NEGATE, EXP, SIGMOID, TANH, RELU)
