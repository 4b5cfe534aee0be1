from zodirectus.pipeline import main

main()
